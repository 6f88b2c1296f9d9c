"""HTTP client utilities with consistent user agent."""

from typing import Optional

import requests


def _get_package_version() -> str:
    """Get the package version for User-Agent header."""
    try:
        from importlib.metadata import version

        return version("protogen")
    except Exception:
        try:
            from pathlib import Path

            import tomllib

            pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
            if pyproject_path.exists():
                with open(pyproject_path, "rb") as f:
                    pyproject_data = tomllib.load(f)
                return pyproject_data.get("project", {}).get("version", "unknown")
        except Exception:
            return "unknown"
    return "unknown"


USER_AGENT = f"protogen/{_get_package_version()}"

# Default timeout for repository requests in seconds
DEFAULT_TIMEOUT = 60


def get_default_headers(token: Optional[str] = None) -> dict:
    """
    Get default HTTP headers with user agent.

    Args:
        token: Optional bearer token for authenticated repositories

    Returns:
        Dictionary of HTTP headers
    """
    headers = {"User-Agent": USER_AGENT}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def create_session(token: Optional[str] = None) -> requests.Session:
    """Create a requests session carrying the default headers."""
    session = requests.Session()
    session.headers.update(get_default_headers(token=token))
    return session
