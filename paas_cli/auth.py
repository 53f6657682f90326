from __future__ import annotations

from typing import Callable

import typer

from . import auth_inputs
from .cli_shared import (
    PAAS_PASSWORD,
    PAAS_USERNAME,
    AuthenticationError,
    GlobalOpts,
    UsageError,
    _env_or_none,
    _eprint,
)
from .config import Settings, check_required_association, load_settings, save_settings
from .transport import api_get, api_post

Prompt = Callable[[str, bool], str]


def verify_session(settings: Settings) -> bool:
    if not settings.session_token:
        return False
    try:
        doc = api_get(settings, settings.auth_url("/auth/verify"))
    except AuthenticationError:
        return False
    if isinstance(doc, dict):
        users_id = str(doc.get("usersId") or doc.get("id") or "").strip()
        if users_id:
            settings.users_id = users_id
    return True


def signin(settings: Settings, *, prompt: Prompt | None = None) -> str:
    """Ensure ``settings`` carries a valid session token; returns the user id.

    A stored token is verified first. When it is missing or rejected, the
    user signs in with username/password and the new token is persisted.
    """
    if verify_session(settings):
        return settings.users_id

    settings.session_token = ""
    try:
        creds = auth_inputs.resolve_basic_credentials(
            username=_env_or_none(PAAS_USERNAME) or settings.username or None,
            password=None,
            env_or_none=_env_or_none,
            prompt=prompt,
            username_env_names=(PAAS_USERNAME,),
            password_env_names=(PAAS_PASSWORD,),
        )
    except auth_inputs.AuthInputError as e:
        raise UsageError(str(e)) from e

    doc = api_post(
        settings,
        settings.auth_url("/auth/signin"),
        body_obj={"username": creds.username, "password": creds.password},
    )
    try:
        grant = auth_inputs.session_grant_from_doc(doc)
    except auth_inputs.AuthInputError as e:
        raise AuthenticationError(str(e)) from e

    settings.session_token = grant.session_token
    settings.users_id = grant.users_id
    settings.username = creds.username
    save_settings(settings)
    return settings.users_id


def _typer_prompt(label: str, hide_input: bool) -> str:
    return str(typer.prompt(label, hide_input=hide_input)).strip()


def open_session(
    g: GlobalOpts,
    *,
    needs_env: bool,
    needs_org: bool,
    prompt: Prompt | None = _typer_prompt,
) -> Settings:
    settings = load_settings(g, select_env=needs_env)
    previous_token = settings.session_token
    signin(settings, prompt=prompt)
    if settings.session_token != previous_token and not g.quiet:
        _eprint(f"signed in as {settings.username or settings.users_id}")
    check_required_association(settings, needs_env=needs_env, needs_org=needs_org)
    return settings
