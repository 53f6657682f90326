from __future__ import annotations

import argparse
import sys
from typing import Any

import click
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from . import __version__
from .associations import cmd_associate, cmd_associated, cmd_disassociate
from .cli_shared import (
    PAAS_ENV,
    PAAS_SETTINGS,
    GlobalOpts,
    OpError,
    UsageError,
    _eprint,
    _env_or_none,
)
from .invites import cmd_invites_accept, cmd_invites_list, cmd_invites_rm, cmd_invites_send
from .workers import cmd_worker_list

_ERROR_CONSOLE = Console(stderr=True)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {escape(msg)}", highlight=False)


def _bootstrap_env() -> None:
    # Discover and load .env without overriding already-exported values.
    load_dotenv()


def _render_usage_error_with_help(
    *,
    message: str,
    ctx: click.Context | None = None,
) -> None:
    _rich_error(message)
    help_text = ""
    if isinstance(ctx, click.Context):
        try:
            help_text = str(ctx.get_help() or "").strip()
        except Exception:
            help_text = ""
    if help_text:
        _eprint("")
        _eprint(help_text)


def _namespace(**kwargs: Any) -> argparse.Namespace:
    return argparse.Namespace(**kwargs)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"paas {__version__}")
        raise typer.Exit(code=0)


app = typer.Typer(
    name="paas",
    help="Manage organization invites, environment associations and workers.",
    no_args_is_help=True,
    add_completion=False,
)
invites_app = typer.Typer(
    help="Manage invitations for your organizations",
    no_args_is_help=True,
)
worker_app = typer.Typer(
    help="Inspect background workers for a service",
    no_args_is_help=True,
)

app.add_typer(invites_app, name="invites")
app.add_typer(worker_app, name="worker")


def _global_opts(
    *,
    env_alias: str | None = None,
    settings_path: str | None = None,
    plain_json: bool = False,
    quiet: bool = False,
) -> GlobalOpts:
    return GlobalOpts(
        settings_path=str(settings_path or _env_or_none(PAAS_SETTINGS) or ""),
        env_alias=str(env_alias or _env_or_none(PAAS_ENV) or "").strip(),
        pretty=not plain_json,
        quiet=quiet,
    )


@app.callback()
def app_callback(
    ctx: typer.Context,
    env_alias: str | None = typer.Option(
        None,
        "--env",
        "-E",
        help=f"Alias of the associated environment to use (env override: {PAAS_ENV})",
    ),
    settings_path: str | None = typer.Option(
        None,
        "--settings",
        help=f"Path to the settings file (default: ~/.paas/settings.json; env override: {PAAS_SETTINGS})",
    ),
    plain_json: bool = typer.Option(False, "--plain-json", help="Emit compact JSON output"),
    quiet: bool = typer.Option(False, "--quiet", help="Reduce stderr logging"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    del version
    ctx.obj = {
        "g": _global_opts(
            env_alias=env_alias,
            settings_path=settings_path,
            plain_json=plain_json,
            quiet=quiet,
        )
    }


def _ctx_global(ctx: typer.Context) -> GlobalOpts:
    root = ctx.find_root()
    for c in (ctx, root):
        if isinstance(c.obj, dict) and isinstance(c.obj.get("g"), GlobalOpts):
            return c.obj["g"]
    return _global_opts()


def _invoke(ctx: typer.Context, func: Any, **kwargs: Any) -> None:
    g = _ctx_global(ctx)
    args = _namespace(**kwargs)
    try:
        code = int(func(args, g))
    except UsageError as e:
        _render_usage_error_with_help(message=str(e), ctx=ctx)
        raise typer.Exit(code=2)
    except OpError as e:
        _rich_error(str(e))
        raise typer.Exit(code=1)

    if code:
        raise typer.Exit(code=code)


@invites_app.command(
    "accept",
    help="Accept an organization invite using the invite code from the invitation email.",
)
def invites_accept(
    ctx: typer.Context,
    invite_code: str = typer.Argument(..., help="The invite code that was sent in the invite email"),
) -> None:
    _invoke(ctx, cmd_invites_accept, invite_code=invite_code)


@invites_app.command(
    "list",
    help="List all pending invites for the associated environment's organization.",
)
def invites_list(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Emit raw JSON output"),
) -> None:
    _invoke(ctx, cmd_invites_list, json_output=json_output)


@invites_app.command(
    "rm",
    help="Remove a pending organization invitation. Accepted invites cannot be removed.",
)
def invites_rm(
    ctx: typer.Context,
    invite_id: str = typer.Argument(..., help="The ID of an invitation to remove"),
) -> None:
    _invoke(ctx, cmd_invites_rm, invite_id=invite_id)


@invites_app.command(
    "send",
    help="Send an invite by email to join the associated environment's organization.",
)
def invites_send(
    ctx: typer.Context,
    email: str = typer.Argument(..., help="The email of a user to invite to the associated environment"),
    member: bool = typer.Option(False, "-m", "--member", help="Invite the user as a basic member (default)"),
    admin: bool = typer.Option(False, "-a", "--admin", help="Invite the user as an admin"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    if member and admin:
        _render_usage_error_with_help(message="pass at most one of -m/--member and -a/--admin", ctx=ctx)
        raise typer.Exit(code=2)
    _invoke(ctx, cmd_invites_send, email=email, admin=admin, yes=yes)


@worker_app.command(
    "list",
    help="List worker targets of a service with their scale and running jobs.",
)
def worker_list(
    ctx: typer.Context,
    service_label: str = typer.Argument(..., help="The name of the service to list workers for"),
    json_output: bool = typer.Option(False, "--json", help="Emit raw JSON output"),
) -> None:
    _invoke(ctx, cmd_worker_list, service_label=service_label, json_output=json_output)


@app.command(
    "associate",
    help="Associate the current directory with an environment you have access to.",
)
def associate(
    ctx: typer.Context,
    env_name: str = typer.Argument(..., help="The name of the environment to associate"),
    alias: str | None = typer.Argument(None, help="A shorter name to refer to the environment by"),
    default: bool = typer.Option(False, "--default", "-d", help="Make this the default environment"),
) -> None:
    _invoke(ctx, cmd_associate, env_name=env_name, alias=alias, default=default)


@app.command("associated", help="List all environments associated on this machine.")
def associated(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Emit raw JSON output"),
) -> None:
    _invoke(ctx, cmd_associated, json_output=json_output)


@app.command(
    "disassociate",
    help="Remove an environment association. The git remote, if any, is not removed.",
)
def disassociate(
    ctx: typer.Context,
    alias: str = typer.Argument(..., help="The alias of an already associated environment"),
) -> None:
    _invoke(ctx, cmd_disassociate, alias=alias)


def _run_cli(*, root_app: typer.Typer, prog_name: str, argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    _bootstrap_env()
    try:
        result = root_app(args=argv, prog_name=prog_name, standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.exceptions.Abort:
        _rich_error("aborted")
        return 1
    except click.ClickException as e:
        if isinstance(e, click.UsageError):
            _render_usage_error_with_help(message=e.format_message(), ctx=getattr(e, "ctx", None))
            return int(e.exit_code)
        _rich_error(e.format_message())
        return int(e.exit_code)


def main(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=app, prog_name="paas", argv=argv)


if __name__ == "__main__":
    raise SystemExit(main())
