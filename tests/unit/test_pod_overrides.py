import json
import pytest
from pydantic import ValidationError
from krmrun.MODELS.pod_overrides import (
    ContainerOverride,
    EmptyDirSource,
    HostPathSource,
    PodOverride,
    PodSecurityContext,
    PodSpec,
    Volume,
    VolumeMountOverride,
)

def security_context():
    return PodSecurityContext(run_as_user=65534, run_as_group=65534)

def test_to_json_uses_wire_names():
    override = PodOverride(spec=PodSpec(
        containers=[ContainerOverride(
            image="fn:v1",
            volume_mounts=[VolumeMountOverride(name="v1", mount_path="/data", read_only=True)],
        )],
        security_context=security_context(),
        volumes=[Volume(name="v1", host_path=HostPathSource(path="/work/data"))],
    ))
    payload = json.loads(override.to_json())
    container = payload["spec"]["containers"][0]
    assert container["stdinOnce"] is True
    assert container["volumeMounts"] == [{"name": "v1", "mountPath": "/data", "readOnly": True}]
    assert payload["spec"]["securityContext"]["runAsUser"] == 65534
    assert payload["spec"]["volumes"] == [{"name": "v1", "hostPath": {"path": "/work/data"}}]

def test_volume_requires_single_source():
    with pytest.raises(ValidationError):
        Volume(name="v1")
    with pytest.raises(ValidationError):
        Volume(name="v1", host_path=HostPathSource(path="/x"), empty_dir=EmptyDirSource())

def test_mount_requires_volume():
    with pytest.raises(ValidationError):
        PodSpec(
            containers=[ContainerOverride(
                image="fn",
                volume_mounts=[VolumeMountOverride(name="missing", mount_path="/data")],
            )],
            security_context=security_context(),
        )
