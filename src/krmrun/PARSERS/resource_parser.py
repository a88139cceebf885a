# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Parsers for KRM resource streams and ResourceList wrappers.
"""
import yaml
from typing import Dict, Any, List, Optional

RESOURCE_LIST_API_VERSION = "config.kubernetes.io/v1"
RESOURCE_LIST_KIND = "ResourceList"

class ResourceParser:
    """
    Reads and writes YAML resource streams exchanged with functions.
    """
    def parse(self, path: str) -> List[Dict[str, Any]]:
        """
        Parses a resource stream from a path.

        :param path: Path to a YAML file holding one or more documents.
        :return: Parsed documents.
        """
        with open(path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> List[Dict[str, Any]]:
        """
        Parses a resource stream from a string.
        A ResourceList document is unwrapped into its items.

        :param content: YAML content.
        :return: Parsed documents.
        """
        documents = []
        for doc in parse_documents(content):
            if is_resource_list(doc):
                documents.extend(unwrap_resource_list(doc))
            else:
                documents.append(doc)
        return documents

def parse_documents(content: str) -> List[Dict[str, Any]]:
    """
    Parses a `---` separated YAML stream into mappings, skipping empty documents.

    :raises ValueError: If a document is not a mapping.
    """
    documents = []
    for doc in yaml.safe_load_all(content):
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise ValueError(f"Expected a mapping document, got {type(doc).__name__}")
        documents.append(doc)
    return documents

def dump_documents(documents: List[Dict[str, Any]]) -> str:
    """
    Serializes documents into a `---` separated YAML stream.
    """
    if not documents:
        return ""
    return yaml.safe_dump_all(documents, sort_keys=False, default_flow_style=False)

def is_resource_list(doc: Dict[str, Any]) -> bool:
    return doc.get("kind") == RESOURCE_LIST_KIND

def wrap_resource_list(items: List[Dict[str, Any]],
                       function_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Wraps documents into the ResourceList sent to a function.
    """
    resource_list = {
        "apiVersion": RESOURCE_LIST_API_VERSION,
        "kind": RESOURCE_LIST_KIND,
        "items": list(items),
    }
    if function_config is not None:
        resource_list["functionConfig"] = function_config
    return resource_list

def unwrap_resource_list(doc: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Returns the items of a ResourceList.

    :raises ValueError: If an item is not a mapping.
    """
    items = doc.get("items") or []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"Expected a mapping item, got {type(item).__name__}")
    return list(items)
