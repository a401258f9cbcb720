"""
HTTP plumbing shared by all providers.

One ``requests.Session`` per provider class, mounted with a urllib3
``Retry`` policy (bounded retries with backoff on connection errors, 429 and
5xx). ``get_json`` turns every transport, HTTP and decoding failure into a
``ProviderUnavailableError`` naming the provider.

Files that USE this module:
- silverrate.adapters.providers.yahoo
- silverrate.adapters.providers.frankfurter
- silverrate.adapters.providers.open_er

Files that this module USES:
- silverrate.config (timeout, retry count and User-Agent)
- silverrate.domain.errors (ProviderUnavailableError)
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from silverrate.config import settings
from silverrate.domain.errors import ProviderUnavailableError

log = logging.getLogger(__name__)


def build_session(retries: Optional[int] = None) -> requests.Session:
    """Create a session with bounded retries and the bot's User-Agent."""
    total = settings.http_retries if retries is None else retries
    retry = Retry(
        total=total,
        connect=total,
        read=total,
        status=total,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset(["GET"]),
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"User-Agent": settings.user_agent, "Accept": "application/json"})
    return session


def get_json(
    session: requests.Session,
    provider: str,
    url: str,
    timeout: float,
    params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    GET a JSON object.

    Raises:
        ProviderUnavailableError: On timeout, network error, non-2xx status,
            invalid JSON or a non-object payload
    """
    try:
        resp = session.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
    except requests.exceptions.Timeout:
        log.error("%s timeout after %s seconds", provider, timeout)
        raise ProviderUnavailableError(provider, f"timeout after {timeout}s")
    except requests.exceptions.RequestException as e:
        log.error("%s request failed: %s", provider, e)
        raise ProviderUnavailableError(provider, f"request failed: {e}")
    except ValueError as e:
        log.error("%s returned invalid JSON: %s", provider, e)
        raise ProviderUnavailableError(provider, f"invalid JSON: {e}")

    if not isinstance(data, dict):
        log.error("%s unexpected response type: %r", provider, type(data))
        raise ProviderUnavailableError(provider, "non-object JSON response")
    return data
