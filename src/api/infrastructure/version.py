"""Version string reported by the API and its startup probe."""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION_NAME = "identity-api"
_PYPROJECT = Path(__file__).resolve().parents[3] / "pyproject.toml"


def get_version() -> str:
    """Return the installed distribution version.

    A source checkout that was never installed reads ``project.version``
    from the repository's pyproject.toml instead.
    """
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        with _PYPROJECT.open("rb") as fh:
            return tomllib.load(fh)["project"]["version"]


__version__ = get_version()
