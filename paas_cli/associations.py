from __future__ import annotations

import argparse
import os
import sys

from . import environments as env_dir
from .auth import open_session
from .cli_shared import GlobalOpts, NotFoundError, UsageError, _print_json
from .config import Breadcrumb, add_breadcrumb, delete_breadcrumb, load_settings
from .tables import cell, print_table


def cmd_associate(args: argparse.Namespace, g: GlobalOpts) -> int:
    settings = open_session(g, needs_env=False, needs_org=False)
    env_name = str(args.env_name or "").strip()
    if not env_name:
        raise UsageError("missing ENV_NAME")
    env = env_dir.retrieve_by_name(settings, env_name)
    if env is None:
        raise NotFoundError(
            f'No environment with name "{env_name}" found. '
            "Make sure you have access to it and that the name is spelled correctly"
        )
    alias = str(args.alias or "").strip() or env.name
    crumb = Breadcrumb(
        alias=alias,
        environment_id=env.id,
        name=env.name,
        org_id=env.org_id,
        pod=env.pod,
        directory=os.getcwd(),
    )
    add_breadcrumb(settings, crumb, make_default=bool(args.default))
    sys.stdout.write(f'Environment "{env.name}" associated as "{alias}".\n')
    if args.default:
        sys.stdout.write(f'"{alias}" is now the default environment.\n')
    return 0


def cmd_associated(args: argparse.Namespace, g: GlobalOpts) -> int:
    settings = load_settings(g, select_env=False)
    crumbs = sorted(settings.environments.values(), key=lambda c: c.alias)
    if bool(getattr(args, "json_output", False)):
        _print_json(
            {
                "default": settings.default,
                "environments": {c.alias: c.to_doc() for c in crumbs},
            },
            pretty=g.pretty,
        )
        return 0
    rows = [
        [
            cell(c.alias),
            cell(c.name),
            cell(c.pod),
            "*" if c.alias == settings.default else "",
        ]
        for c in crumbs
    ]
    print_table(
        headers=["ALIAS", "ENVIRONMENT", "POD", "DEFAULT"],
        rows=rows,
        empty_message='No environments have been associated. Run "paas associate" to add one.',
    )
    return 0


def disassociate(g: GlobalOpts, alias: str) -> bool:
    """Drop the breadcrumb for ``alias``; the git remote is left alone."""
    settings = load_settings(g, select_env=False)
    return delete_breadcrumb(settings, alias)


def cmd_disassociate(args: argparse.Namespace, g: GlobalOpts) -> int:
    alias = str(args.alias or "").strip()
    if not alias:
        raise UsageError("missing ALIAS")
    disassociate(g, alias)
    sys.stdout.write("WARNING: Your existing git remote *has not* been removed.\n\n")
    sys.stdout.write("Association cleared.\n")
    return 0
