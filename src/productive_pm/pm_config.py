"""Productive configuration with directory-based detection.

Workspaces that talk to several Productive organizations keep one
.productive/ folder per project directory.

## .productive/ Folder

```
.productive/
├── config.json          # Main config file
└── cache.db             # Resolution cache (created on demand)
```

### config.json Structure

```json
{
  "organization_id": "12345",
  "auth": {
    "api_token_env": "PRODUCTIVE_API_TOKEN_WORK"
  },
  "cache": {
    "enabled": true,
    "dir": null
  }
}
```

### Resolution Order

1. .productive/config.json in the current directory
2. .productive/config.json in a parent directory
3. ~/.config/productive-pm/config.json (user default)
4. Environment variables (PRODUCTIVE_API_TOKEN, PRODUCTIVE_ORG_ID)
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from platformdirs import user_cache_dir

# User-level config location
USER_CONFIG_DIR = Path.home() / ".config" / "productive-pm"
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.json"

# Directory-level config
PM_CONFIG_DIR = ".productive"
PM_CONFIG_FILE = "config.json"

DEFAULT_TOKEN_ENV = "PRODUCTIVE_API_TOKEN"
ORG_ID_ENV = "PRODUCTIVE_ORG_ID"
BASE_URL_ENV = "PRODUCTIVE_BASE_URL"


@dataclass
class PMContext:
    """Resolved Productive context for a directory."""

    # Source of config
    config_path: Optional[Path] = None
    config_source: str = "none"  # "directory", "parent", "user", "none"

    organization_id: Optional[str] = None
    base_url: Optional[str] = None

    # Auth
    api_token: Optional[str] = None
    api_token_env: str = DEFAULT_TOKEN_ENV

    # Resolution cache
    cache_enabled: bool = True
    cache_dir: Optional[str] = None

    def has_organization(self) -> bool:
        return bool(self.organization_id)

    def get_db_path(self) -> Path:
        """Get the cache database path for this context.

        Resolution order:
        1. Custom cache dir from config (if set)
        2. Next to a directory-level .productive/config.json
        3. User cache directory, one file per organization
        """
        if self.cache_dir:
            return Path(self.cache_dir) / "cache.db"

        if self.config_path and self.config_source in ("directory", "parent"):
            return self.config_path.parent / "cache.db"

        name = f"{self.organization_id}.db" if self.organization_id else "default.db"
        return Path(user_cache_dir("productive-pm", "productive-pm")) / name


def find_pm_config(start_path: Optional[Path] = None) -> Optional[Path]:
    """Find the nearest .productive/config.json by walking up the directory tree."""
    current = Path(start_path or Path.cwd()).resolve()

    while True:
        config_path = current / PM_CONFIG_DIR / PM_CONFIG_FILE
        if config_path.exists():
            return config_path
        if current == current.parent:
            return None
        current = current.parent


def load_pm_config(config_path: Path) -> dict:
    """Load and parse a .productive/config.json file."""
    with open(config_path) as f:
        return json.load(f) or {}


def load_user_config() -> Optional[dict]:
    """Load user-level config from ~/.config/productive-pm/config.json."""
    if USER_CONFIG_FILE.exists():
        with open(USER_CONFIG_FILE) as f:
            return json.load(f)
    return None


def resolve_context(path: Optional[Path] = None) -> PMContext:
    """Resolve the Productive context for a path.

    Directory config wins over user config; environment variables fill in
    whatever is still missing.

    Args:
        path: Directory to resolve context for (default: cwd)
    """
    context = PMContext()

    pm_config_path = find_pm_config(path)
    if pm_config_path:
        data = load_pm_config(pm_config_path)
        context.config_path = pm_config_path

        target_dir = Path(path).resolve() if path else Path.cwd().resolve()
        config_dir = pm_config_path.parent.parent  # .productive/config.json -> .productive -> parent
        context.config_source = "directory" if config_dir == target_dir else "parent"

        org_id = data.get("organization_id")
        context.organization_id = str(org_id) if org_id else None
        context.base_url = data.get("base_url")

        auth_config = data.get("auth", {})
        context.api_token_env = auth_config.get("api_token_env", DEFAULT_TOKEN_ENV)

        cache_config = data.get("cache", {})
        context.cache_enabled = cache_config.get("enabled", True)
        context.cache_dir = cache_config.get("dir")

    user_config = load_user_config()
    if user_config and not context.has_organization():
        if not context.config_path:
            context.config_path = USER_CONFIG_FILE
            context.config_source = "user"
        org_id = user_config.get("organization_id")
        context.organization_id = str(org_id) if org_id else None

    if not context.has_organization():
        context.organization_id = os.environ.get(ORG_ID_ENV)
    if not context.base_url:
        context.base_url = os.environ.get(BASE_URL_ENV)

    # Token: configured env var, default env var, then user config
    context.api_token = os.environ.get(context.api_token_env)
    if not context.api_token:
        context.api_token = os.environ.get(DEFAULT_TOKEN_ENV)
    if not context.api_token and user_config:
        context.api_token = user_config.get("api_token")

    return context


def create_pm_config(
    path: Path,
    organization_id: Optional[str] = None,
    api_token_env: Optional[str] = None,
    cache_enabled: bool = True,
) -> Path:
    """Create a .productive/config.json file in the specified directory.

    Returns:
        Path to created config file
    """
    pm_dir = Path(path) / PM_CONFIG_DIR
    pm_dir.mkdir(exist_ok=True)

    config: dict = {"cache": {"enabled": cache_enabled}}
    if organization_id:
        config["organization_id"] = organization_id
    if api_token_env:
        config["auth"] = {"api_token_env": api_token_env}

    config_path = pm_dir / PM_CONFIG_FILE
    with open(config_path, "w") as f:
        json.dump(config, f, indent=2)

    return config_path


def get_context_help_message(context: PMContext) -> str:
    """Generate a helpful message about the current context."""
    if context.config_source == "none":
        return """No Productive configuration found.

To configure this directory, create .productive/config.json:

```json
{
  "organization_id": "12345"
}
```

Or run: productive-pm init
"""

    lines = [f"Productive context (from {context.config_source}):"]
    lines.append(f"  Config: {context.config_path}")
    if context.organization_id:
        lines.append(f"  Organization: {context.organization_id}")
    else:
        lines.append("  Organization: Not configured")

    if context.api_token:
        lines.append(f"  Auth: {context.api_token_env} (configured)")
    else:
        lines.append(f"  Auth: {context.api_token_env} (NOT SET)")

    lines.append(f"  Resolve cache: {'enabled' if context.cache_enabled else 'disabled'}")
    return "\n".join(lines)
