"""
Command Line Interface for krmrun.
"""
import logging
import shlex
import click
import yaml
from ..exceptions import KrmRunError
from ..MODELS.container_spec import Backend, ContainerSpec
from ..MODELS.runtime_config import RuntimeConfig
from ..PARSERS.env_parser import EnvParser
from ..PARSERS.mount_parser import MountParser
from ..PARSERS.resource_parser import ResourceParser, dump_documents
from ..RUNNERS.container_filter import new_container

logger = logging.getLogger(__name__)

def _parse_mounts(ctx, param, values):
    mounts = []
    for value in values:
        try:
            mounts.append(MountParser.parse(value))
        except ValueError as e:
            raise click.BadParameter(str(e), ctx=ctx, param=param)
    return mounts

def container_options(func):
    """
    Options shared by every command that builds a function container.
    """
    options = [
        click.argument('image'),
        click.option('--network/--no-network', default=False, help='Share the host network'),
        click.option('--mount', 'mounts', multiple=True, callback=_parse_mounts,
                     help='Storage mount, e.g. type=bind,src=cfg,dst=/cfg'),
        click.option('--env', '-e', 'env', multiple=True, help='KEY=VALUE, or KEY to inherit'),
        click.option('--env-file', 'env_files', multiple=True, type=click.Path(exists=True, dir_okay=False),
                     help='.env file with container environment'),
        click.option('--as-user', 'as_user', default=None, help='Identity as uid:gid or nobody'),
        click.option('--kubernetes/--docker', 'kubernetes', default=None,
                     help='Run as a kubectl pod instead of a docker container'),
        click.option('--working-dir', default='', help='Directory relative mount sources resolve against'),
    ]
    for option in reversed(options):
        func = option(func)
    return func

def _build_filter(config, image, network, mounts, env, env_files, as_user, kubernetes, working_dir,
                  defer_failure=False, function_config=None):
    entries = []
    for env_file in env_files:
        entries.extend(EnvParser.to_entries(EnvParser.parse(env_file)))
    entries.extend(env)

    spec = ContainerSpec(image=image, network=network, storage_mounts=mounts, env=entries)
    if kubernetes is None:
        backend = config.backend
    else:
        backend = Backend.ORCHESTRATOR if kubernetes else Backend.LOCAL_ENGINE
    return new_container(
        spec,
        uid_gid=as_user if as_user is not None else config.uid_gid,
        backend=backend,
        defer_failure=defer_failure,
        working_dir=working_dir,
        function_config=function_config,
        config=config,
    )

@click.group()
@click.option('--config', 'config_file', default=None, type=click.Path(dir_okay=False),
              help='.env file with KRMRUN_* settings')
@click.option('--log-level', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
@click.pass_context
def cli(ctx, config_file, log_level):
    """
    krmrun - run containerized KRM functions.

    Builds hardened docker or kubectl invocations and pipes resources through them.
    """
    ctx.ensure_object(dict)
    config = RuntimeConfig.from_env(env_file=config_file)
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj['config'] = config

@cli.command()
@container_options
@click.option('--json', 'as_json', is_flag=True, help='Print the invocation as JSON')
@click.pass_context
def command(ctx, image, network, mounts, env, env_files, as_user, kubernetes, working_dir, as_json):
    """Print the command that would run the function."""
    container = _build_filter(ctx.obj['config'], image, network, mounts, env, env_files,
                              as_user, kubernetes, working_dir)
    try:
        invocation = container.ensure_built()
    except KrmRunError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if as_json:
        click.echo(invocation.model_dump_json())
    else:
        click.echo(shlex.join(invocation.command))

@cli.command()
@container_options
@click.option('--input', '-i', 'input_file', type=click.File('r'), default='-',
              help='Resources to transform, defaults to stdin')
@click.option('--function-config', type=click.File('r'), default=None,
              help='YAML mapping sent as the ResourceList functionConfig')
@click.option('--defer-failure/--no-defer-failure', default=None,
              help='Write the output before reporting a failing function')
@click.pass_context
def run(ctx, image, network, mounts, env, env_files, as_user, kubernetes, working_dir,
        input_file, function_config, defer_failure):
    """Run the function over resources and print the result."""
    config = ctx.obj['config']
    if defer_failure is None:
        defer_failure = config.defer_failure

    try:
        documents = ResourceParser().parse_from_string(input_file.read())
        fn_config = yaml.safe_load(function_config.read()) if function_config else None
        if fn_config is not None and not isinstance(fn_config, dict):
            raise ValueError("function config must be a YAML mapping")
    except (yaml.YAMLError, ValueError) as e:
        click.echo(f"Error: invalid input: {e}", err=True)
        ctx.exit(1)

    container = _build_filter(config, image, network, mounts, env, env_files, as_user, kubernetes,
                              working_dir, defer_failure=defer_failure, function_config=fn_config)
    try:
        output = container.filter(documents)
    except KrmRunError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    click.echo(dump_documents(output), nl=False)
    for result in container.results:
        logger.info("Function result: %s", result)

    exit_error = container.get_exit()
    if exit_error is not None:
        click.echo(f"Error: {exit_error}", err=True)
        ctx.exit(1)

def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})

if __name__ == '__main__':
    main()
