"""Reading a Redmine API key from the user's .netrc file."""

import netrc
import os
from pathlib import Path
from urllib.parse import urlparse


def get_redmine_api_key_from_netrc(base_url: str) -> str | None:
    """Look up the API key stored as the password for the Redmine host.

    Example .netrc entry:
        machine redmine.example.com
        login api
        password 0123456789abcdef

    Returns:
        The API key, or None when there is no usable entry. A missing or
        malformed .netrc is not an error; it is an optional source.
    """
    try:
        parsed = urlparse(base_url)
        hostname = parsed.hostname or parsed.path.split("/")[0]
        if not hostname:
            return None

        netrc_path = Path.home() / (".netrc" if os.name != "nt" else "_netrc")
        if not netrc_path.exists():
            return None

        auth = netrc.netrc(str(netrc_path)).authenticators(hostname)
        if auth:
            _, _, password = auth
            return password or None
        return None

    except (netrc.NetrcParseError, OSError, ValueError):
        return None
