"""Connection profiles for saltpipe.

Profiles let one machine talk to several Salt masters (lab, staging,
production) and switch between them. Passwords are never written here; a
profile only names the keyring credentials id to use.

Configuration is stored in ~/.config/saltpipe/config.json:
{
  "current-profile": "lab",
  "profiles": {
    "lab": {
      "url": "https://salt-api.lab.example.com:8000",
      "credentials-id": "salt-lab",
      "eauth": "pam",
      "verify-ssl": true
    }
  }
}
"""

import json
import os
import stat
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from .credentials import DEFAULT_CREDENTIALS_ID
from .session import DEFAULT_EAUTH


@dataclass(frozen=True)
class Profile:
    """A Salt API connection profile."""

    name: str
    url: str
    credentials_id: str = DEFAULT_CREDENTIALS_ID
    eauth: str = DEFAULT_EAUTH
    verify_ssl: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert profile to dictionary for serialization."""
        result: Dict[str, Any] = {
            "url": self.url,
            "credentials-id": self.credentials_id,
        }
        if self.eauth != DEFAULT_EAUTH:
            result["eauth"] = self.eauth
        if not self.verify_ssl:
            result["verify-ssl"] = False
        return result

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "Profile":
        """Create a Profile from a dictionary."""
        return cls(
            name=name,
            url=data.get("url", ""),
            credentials_id=data.get("credentials-id", DEFAULT_CREDENTIALS_ID),
            eauth=data.get("eauth", DEFAULT_EAUTH),
            verify_ssl=bool(data.get("verify-ssl", True)),
        )


@dataclass
class ProfileConfig:
    """Configuration file manager for profiles."""

    current_profile: Optional[str] = None
    profiles: Dict[str, Profile] = field(default_factory=dict)

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the path to the configuration file."""
        if "SALTPIPE_CONFIG" in os.environ:
            return Path(os.environ["SALTPIPE_CONFIG"])

        if "XDG_CONFIG_HOME" in os.environ:
            config_dir = Path(os.environ["XDG_CONFIG_HOME"]) / "saltpipe"
        else:
            config_dir = Path.home() / ".config" / "saltpipe"

        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir / "config.json"

    @classmethod
    def load(cls) -> "ProfileConfig":
        """Load configuration from file. A missing or corrupt file yields an empty config."""
        config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            return cls()

        profiles = {
            name: Profile.from_dict(name, profile_data)
            for name, profile_data in data.get("profiles", {}).items()
        }
        return cls(current_profile=data.get("current-profile"), profiles=profiles)

    def save(self) -> None:
        """Save configuration to file, readable by the owner only."""
        config_path = self.get_config_path()

        data: Dict[str, Any] = {}
        if self.current_profile:
            data["current-profile"] = self.current_profile
        if self.profiles:
            data["profiles"] = {name: profile.to_dict() for name, profile in self.profiles.items()}

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            try:
                config_path.chmod(stat.S_IRUSR | stat.S_IWUSR)
            except OSError:
                # Windows ignores POSIX modes
                pass
        except OSError as e:
            raise RuntimeError(f"Failed to save configuration: {e}")

    def get_profile(self, name: str) -> Optional[Profile]:
        """Get a profile by name."""
        return self.profiles.get(name)

    def get_current_profile(self) -> Optional[Profile]:
        """Get the currently active profile."""
        if not self.current_profile:
            return None
        return self.profiles.get(self.current_profile)

    def set_current_profile(self, name: str) -> None:
        """Set the current profile."""
        if name not in self.profiles:
            raise ValueError(f"Profile '{name}' does not exist")
        self.current_profile = name

    def add_profile(self, profile: Profile, set_current: bool = False) -> None:
        """Add or update a profile."""
        self.profiles[profile.name] = profile
        if set_current or not self.current_profile:
            self.current_profile = profile.name

    def delete_profile(self, name: str) -> bool:
        """Delete a profile. Returns True if deleted, False if not found."""
        if name not in self.profiles:
            return False

        del self.profiles[name]
        if self.current_profile == name:
            self.current_profile = next(iter(self.profiles), None)
        return True

    def list_profiles(self) -> List[Profile]:
        """List all profiles."""
        return list(self.profiles.values())


# Profile override for the current command (set via --profile)
_profile_override: Optional[str] = None


def set_profile_override(profile_name: Optional[str]) -> None:
    """Set a profile override for the current command."""
    global _profile_override
    _profile_override = profile_name


def get_profile_override() -> Optional[str]:
    """Get the current profile override."""
    return _profile_override


def get_active_profile() -> Optional[Profile]:
    """Get the active profile, with environment overrides applied.

    Priority order for the profile itself:
    1. CLI --profile option
    2. SALTPIPE_PROFILE environment variable
    3. current-profile from the config file

    SALTPIPE_URL and SALTPIPE_CREDENTIALS_ID then override single fields. With
    no profile at all, SALTPIPE_URL alone is enough to build one.
    """
    config = ProfileConfig.load()
    profile: Optional[Profile]

    override = get_profile_override()
    env_profile = os.environ.get("SALTPIPE_PROFILE")
    if override:
        profile = config.get_profile(override)
        if not profile:
            raise click.ClickException(f"Profile '{override}' not found")
    elif env_profile:
        profile = config.get_profile(env_profile)
        if not profile:
            raise click.ClickException(f"Profile '{env_profile}' not found (from SALTPIPE_PROFILE)")
    else:
        profile = config.get_current_profile()

    env_url = os.environ.get("SALTPIPE_URL")
    env_credentials = os.environ.get("SALTPIPE_CREDENTIALS_ID")
    if profile is None:
        if not env_url:
            return None
        profile = Profile(name="env", url=env_url)
    if env_url:
        profile = replace(profile, url=env_url)
    if env_credentials:
        profile = replace(profile, credentials_id=env_credentials)
    return profile


def check_config_file_permissions() -> Optional[str]:
    """Return a warning if the config file is readable by group or others."""
    config_path = ProfileConfig.get_config_path()
    if not config_path.exists():
        return None

    try:
        mode = config_path.stat().st_mode
        if mode & (stat.S_IRWXG | stat.S_IRWXO):
            return (
                f"Warning: Config file {config_path} has overly permissive permissions. "
                "Consider running: chmod 600 " + str(config_path)
            )
    except OSError:
        pass

    return None
