"""Author identity resolution.

Each field is taken from the first source that sets it:
    1. explicit argument (e.g. --name / --email)
    2. MVC_AUTHOR_NAME / MVC_AUTHOR_EMAIL environment variables
    3. ~/.mvc/identity (KEY=VALUE lines, same variable names)
    4. "name" / "email" in the merged config
Anything left unset is the "None" sentinel.
"""

import os
from pathlib import Path

from dotenv import dotenv_values

from mvc.repository import UNSET, User

IDENTITY_FILE = Path.home() / ".mvc" / "identity"
NAME_VAR = "MVC_AUTHOR_NAME"
EMAIL_VAR = "MVC_AUTHOR_EMAIL"


def load_identity_file():
    if not IDENTITY_FILE.exists():
        return {}
    return {k: v for k, v in dotenv_values(IDENTITY_FILE).items() if v}


def _pick(explicit, var, file_values, config, key):
    if explicit:
        return explicit
    if os.environ.get(var):
        return os.environ[var]
    if file_values.get(var):
        return file_values[var]
    if config.get(key):
        return config[key]
    return UNSET


def resolve_identity(name=None, email=None, config=None):
    config = config or {}
    file_values = load_identity_file()
    return User(
        name=_pick(name, NAME_VAR, file_values, config, "name"),
        email=_pick(email, EMAIL_VAR, file_values, config, "email"),
    )
