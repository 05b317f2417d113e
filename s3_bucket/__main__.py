"""Command line entry point for the bucket client."""
import asyncio
import logging
from pathlib import Path
import sys

import click

from .bucket import S3Bucket
from .cli_utils import (
    format_details,
    format_entry,
    guess_content_type,
    load_package_info,
    to_remote_path,
)
from .errors import S3BucketError
from .profiles import DEFAULT_REGION, ConnectionProfile, ProfileStorage
from .settings import SettingsStorage

LOGGER = logging.getLogger(__name__)


def profile_storage() -> ProfileStorage:
    return ProfileStorage()


def create_bucket(options: dict) -> S3Bucket:
    settings = SettingsStorage().load()
    if options["profile"]:
        return S3Bucket.from_profile(profile_storage().get(options["profile"]), settings)
    return S3Bucket(
        key=options["access_key"],
        secret=options["secret_key"],
        bucket=options["bucket"],
        settings=settings,
    )


def run(ctx: click.Context, operation) -> None:
    """Run ``operation(bucket)`` on a fresh client, turning failures into exit code 1."""

    async def main():
        async with create_bucket(ctx.obj) as bucket:
            await operation(bucket)

    try:
        asyncio.run(main())
    except (S3BucketError, ValueError, OSError) as exc:
        LOGGER.error("%s", exc)
        sys.exit(1)


@click.group()
@click.version_option(load_package_info().version or "unknown", prog_name="pys3bucket")
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
@click.option("--profile", "-P", default=None, help="Name of a saved connection profile")
@click.option("--access-key", "-a", envvar="AWS_ACCESS_KEY_ID", default="", help="Access key (or AWS_ACCESS_KEY_ID)")
@click.option("--secret-key", "-s", envvar="AWS_SECRET_ACCESS_KEY", default="", help="Secret key (or AWS_SECRET_ACCESS_KEY)")
@click.option("--bucket", "-b", envvar="S3_BUCKET", default="", help="Bucket name (or S3_BUCKET)")
@click.pass_context
def cli(ctx: click.Context, debug: bool, profile, access_key: str, secret_key: str, bucket: str):
    """Concurrency-bounded client for a single S3 bucket."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(levelname)s: %(message)s",
    )
    ctx.obj = {
        "profile": profile,
        "access_key": access_key,
        "secret_key": secret_key,
        "bucket": bucket,
    }


@cli.command(name="ls")
@click.option("--long", "-l", "long_format", is_flag=True, help="Show size and modification time")
@click.option("--directories", "-d", is_flag=True, help="Only list common prefixes")
@click.argument("path", default="/")
@click.pass_context
def list_command(ctx: click.Context, long_format: bool, directories: bool, path: str):
    """List objects below PATH."""

    async def operation(bucket: S3Bucket):
        remote = to_remote_path(path)
        if directories:
            async for prefix in bucket.list_common_prefixes(remote).prefixes():
                click.echo(prefix)
        else:
            async for entry in bucket.list(remote).entries():
                click.echo(format_entry(entry, long=long_format))

    run(ctx, operation)


@cli.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Destination file")
@click.argument("path")
@click.pass_context
def get(ctx: click.Context, output, path: str):
    """Download PATH to a file or stdout."""

    async def operation(bucket: S3Bucket):
        data = await bucket.get(to_remote_path(path))
        if output:
            Path(output).write_bytes(data.body)
        else:
            click.get_binary_stream("stdout").write(data.body)

    run(ctx, operation)


@cli.command()
@click.option("--content-type", default=None, help="Content type (guessed from the file name when omitted)")
@click.option("--public", is_flag=True, help="Make the object publicly readable")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.argument("path")
@click.pass_context
def put(ctx: click.Context, content_type, public: bool, source: str, path: str):
    """Upload the local file SOURCE to PATH."""
    source_path = Path(source)

    async def operation(bucket: S3Bucket):
        await bucket.put(
            to_remote_path(path),
            source_path.read_bytes(),
            content_type or guess_content_type(source_path.name),
            private=not public,
        )

    run(ctx, operation)


@cli.command()
@click.argument("path")
@click.pass_context
def head(ctx: click.Context, path: str):
    """Show metadata of PATH."""

    async def operation(bucket: S3Bucket):
        for line in format_details(await bucket.head(to_remote_path(path))):
            click.echo(line)

    run(ctx, operation)


@cli.command()
@click.argument("path")
@click.pass_context
def rm(ctx: click.Context, path: str):
    """Delete PATH; a PATH ending in '/' removes the whole directory."""

    async def operation(bucket: S3Bucket):
        await bucket.delete(to_remote_path(path))

    run(ctx, operation)


@cli.group()
def profile():
    """Manage saved connection profiles."""


@profile.command(name="ls")
def list_profiles():
    for saved in profile_storage().load():
        click.echo(f"{saved.name}\t{saved.bucket}\t{saved.region}")


@profile.command(name="add")
@click.option("--bucket", "-b", required=True)
@click.option("--access-key", "-a", required=True)
@click.option("--secret-key", "-s", prompt=True, hide_input=True)
@click.option("--region", "-r", default=DEFAULT_REGION, show_default=True)
@click.argument("name")
def add_profile(bucket: str, access_key: str, secret_key: str, region: str, name: str):
    """Save (or replace) the profile NAME."""
    profile_storage().upsert(
        ConnectionProfile(name=name, bucket=bucket, access_key=access_key, secret_key=secret_key, region=region)
    )
    click.echo(f"Saved profile {name}")


@profile.command(name="rm")
@click.argument("name")
def remove_profile(name: str):
    if not profile_storage().remove(name):
        raise click.ClickException(f"Profile '{name}' does not exist")
    click.echo(f"Removed profile {name}")


def main():
    cli()


if __name__ == "__main__":
    main()
