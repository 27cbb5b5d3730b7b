"""
pastes/remote.py -- Federation: pastes addressed as "<name>:<server>" live on another instance.

Reads go to https://<server>/api/raw/<name>; edits and deletes are forwarded as
form POSTs to the remote /api/edit and /api/delete. The remote instance reports
failures the same way this one does: an X-Entry-Error header, or an err query
parameter on the redirect Location.

All network failures are soft: fetches return None, forwards return a failed Result.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import parse_qs, urlsplit

import requests

from core.models import Result
from pastes.models import Paste

logger = logging.getLogger("entry.remote")

# Module-level session shared across calls for connection pooling. Remote
# instances are untrusted; 3 redirect hops is plenty and limits redirect chains.
_session = requests.Session()
_session.max_redirects = 3

_TIMEOUT = 10


def split_remote(custom_url: str) -> tuple[str, Optional[str]]:
    """Split "<name>:<server>" into (name, server). Local URLs return (url, None)."""
    name, sep, server = custom_url.partition(":")
    if not sep or not server:
        return custom_url, None
    return name, server


def fetch_remote_paste(custom_url: str) -> Optional[Paste]:
    """Fetch a remote paste's raw content. Returns None on any failure."""
    name, server = split_remote(custom_url)
    if server is None:
        return None
    try:
        resp = _session.get(f"https://{server}/api/raw/{name}", timeout=_TIMEOUT)
    except requests.RequestException as e:
        logger.warning("Remote fetch failed for %s: %s", custom_url, e)
        return None
    if not resp.ok or "text/plain" not in resp.headers.get("Content-Type", ""):
        return None
    return Paste(
        custom_url=custom_url,
        content=resp.text,
        pub_date=_int_header(resp, "X-Paste-PubDate"),
        edit_date=_int_header(resp, "X-Paste-EditDate"),
        group_name=resp.headers.get("X-Paste-GroupName", ""),
        host_server=server,
    )


def fetch_remote_group(group: str) -> list[Paste]:
    """List a remote group. Each returned paste's URL gets the ":<server>" suffix."""
    name, server = split_remote(group)
    if server is None:
        return []
    try:
        resp = _session.get(f"https://{server}/api/group/{name}", timeout=_TIMEOUT)
        resp.raise_for_status()
        records = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("Remote group fetch failed for %s: %s", group, e)
        return []
    if not isinstance(records, list):
        return []
    return [
        Paste(
            custom_url=f"{r['CustomURL']}:{server}",
            content=str(r.get("Content", "")),
            pub_date=_as_int(r.get("PubDate")),
            edit_date=_as_int(r.get("EditDate")),
            group_name=str(r.get("GroupName") or ""),
            host_server=server,
        )
        for r in records
        if isinstance(r, dict) and r.get("CustomURL")
    ]


def forward(server: str, endpoint: str, form: dict[str, str], success_message: str) -> Result:
    """POST form to https://<server>/api/<endpoint> and translate the outcome into a Result."""
    try:
        resp = _session.post(
            f"https://{server}/api/{endpoint}",
            data=form,
            timeout=_TIMEOUT,
            allow_redirects=False,
        )
    except requests.RequestException as e:
        logger.warning("Forwarding %s to %s failed: %s", endpoint, server, e)
        return Result(False, "Connection failed")
    error = error_from_response(resp)
    if error:
        return Result(False, error)
    return Result(True, success_message)


def error_from_response(resp: requests.Response) -> Optional[str]:
    """Read the error a remote instance reported, or None on success."""
    header = resp.headers.get("X-Entry-Error")
    location = resp.headers.get("Location")
    if location:
        errors = parse_qs(urlsplit(location).query).get("err")
        if errors:
            return errors[0]
        return None
    if header and not resp.ok:
        return header
    if not resp.ok:
        return f"Remote server responded {resp.status_code}"
    return None


def _int_header(resp: requests.Response, name: str) -> int:
    return _as_int(resp.headers.get(name))


def _as_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0
