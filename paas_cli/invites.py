from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import typer

from .auth import open_session
from .cli_shared import GlobalOpts, TransportError, UsageError, _print_json
from .config import Settings
from .tables import cell, print_table
from .transport import api_delete, api_get, api_post

ROLE_MEMBER = "member"
ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class Invite:
    id: str
    email: str
    code: str
    org_id: str
    role_id: int | None
    sender_name: str


@dataclass(frozen=True)
class Role:
    id: int
    name: str


def _invite_from_doc(doc: dict[str, Any]) -> Invite:
    role_raw = doc.get("roleId", doc.get("role"))
    try:
        role_id = int(role_raw) if role_raw is not None and role_raw != "" else None
    except (TypeError, ValueError):
        role_id = None
    return Invite(
        id=str(doc.get("id") or "").strip(),
        email=str(doc.get("email") or "").strip(),
        code=str(doc.get("code") or "").strip(),
        org_id=str(doc.get("orgId") or doc.get("orgID") or "").strip(),
        role_id=role_id,
        sender_name=str(doc.get("senderName") or "").strip(),
    )


def role_for_flags(*, admin: bool) -> str:
    return ROLE_ADMIN if admin else ROLE_MEMBER


def accept(settings: Settings, invite_code: str) -> str:
    out = api_post(settings, settings.auth_url(f"/orgs/accept-invite/{quote(invite_code, safe='')}"))
    if isinstance(out, dict):
        return str(out.get("orgID") or out.get("orgId") or "").strip()
    return ""


def list_invites(settings: Settings) -> list[Invite]:
    out = api_get(settings, settings.auth_url(f"/orgs/{settings.org_id}/invites"))
    if out is None:
        return []
    if not isinstance(out, list):
        raise TransportError("invalid invites response: expected JSON array")
    return [_invite_from_doc(item) for item in out if isinstance(item, dict)]


def list_roles(settings: Settings) -> list[Role]:
    out = api_get(settings, settings.auth_url("/orgs/roles"))
    if not isinstance(out, list):
        raise TransportError("invalid roles response: expected JSON array")
    roles: list[Role] = []
    for item in out:
        if not isinstance(item, dict):
            continue
        try:
            roles.append(Role(id=int(item.get("id")), name=str(item.get("name") or "").strip()))
        except (TypeError, ValueError) as e:
            raise TransportError(f"invalid role id in roles response: {item.get('id')!r}") from e
    return roles


def remove(settings: Settings, invite_id: str) -> None:
    api_delete(settings, settings.auth_url(f"/orgs/{settings.org_id}/invites/{quote(invite_id, safe='')}"))


def send(settings: Settings, email: str, role_id: int) -> None:
    api_post(
        settings,
        settings.auth_url(f"/orgs/{settings.org_id}/invites"),
        body_obj={
            "email": email,
            "role": role_id,
            "linkTemplate": f"{settings.auth_host.rstrip('/')}/accept-invite?code={{inviteCode}}",
        },
    )


def _role_id(roles: list[Role], name: str) -> int:
    for role in roles:
        if role.name.lower() == name.lower():
            return role.id
    known = ", ".join(sorted(r.name for r in roles)) or "(none)"
    raise UsageError(f"unknown role {name!r} (available roles: {known})")


def cmd_invites_accept(args: argparse.Namespace, g: GlobalOpts) -> int:
    settings = open_session(g, needs_env=False, needs_org=False)
    code = str(args.invite_code or "").strip()
    if not code:
        raise UsageError("missing INVITE_CODE")
    org_id = accept(settings, code)
    sys.stdout.write(f"Successfully joined organization {org_id or '(unknown)'}\n")
    return 0


def cmd_invites_list(args: argparse.Namespace, g: GlobalOpts) -> int:
    settings = open_session(g, needs_env=True, needs_org=True)
    invites = list_invites(settings)
    if bool(getattr(args, "json_output", False)):
        _print_json(
            [
                {
                    "id": i.id,
                    "email": i.email,
                    "roleId": i.role_id,
                    "senderName": i.sender_name,
                }
                for i in invites
            ],
            pretty=g.pretty,
        )
        return 0
    if not invites:
        sys.stdout.write(f"There are no pending invites for {settings.environment_name}\n")
        return 0
    role_names = {r.id: r.name for r in list_roles(settings)}
    rows = [
        [
            cell(i.id),
            cell(i.email),
            cell(role_names.get(i.role_id, i.role_id) if i.role_id is not None else ""),
            cell(i.sender_name),
        ]
        for i in invites
    ]
    sys.stdout.write(f"Pending invites for {settings.environment_name}:\n")
    print_table(headers=["ID", "EMAIL", "ROLE", "SENT BY"], rows=rows, empty_message="")
    return 0


def cmd_invites_rm(args: argparse.Namespace, g: GlobalOpts) -> int:
    settings = open_session(g, needs_env=True, needs_org=True)
    invite_id = str(args.invite_id or "").strip()
    if not invite_id:
        raise UsageError("missing INVITE_ID")
    remove(settings, invite_id)
    sys.stdout.write(f"Invite {invite_id} removed\n")
    return 0


def cmd_invites_send(args: argparse.Namespace, g: GlobalOpts) -> int:
    settings = open_session(g, needs_env=True, needs_org=True)
    email = str(args.email or "").strip()
    if not email:
        raise UsageError("missing EMAIL")
    role = role_for_flags(admin=bool(args.admin))
    if not bool(getattr(args, "yes", False)):
        question = f"Are you sure you want to invite {email} to {settings.environment_name} as {role}?"
        if not typer.confirm(question, default=True):
            sys.stdout.write("Invite not sent\n")
            return 0
    role_id = _role_id(list_roles(settings), role)
    send(settings, email, role_id)
    sys.stdout.write(f"{email} has been invited to {settings.environment_name} as {role}!\n")
    return 0
