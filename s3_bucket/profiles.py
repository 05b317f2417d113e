from __future__ import annotations
"""Saved bucket connections.

Profiles are kept in a JSON file next to the user's settings; secret keys never
touch that file and are stored in the OS keychain under the profile name.
"""
from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Any, Optional

import keyring
from keyring.errors import KeyringError

from .models import Credentials

LOGGER = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
KEYCHAIN_SERVICE = "pys3bucket"


@dataclass
class ConnectionProfile:
    name: str
    bucket: str
    access_key: str
    secret_key: str
    region: str = DEFAULT_REGION

    @classmethod
    def from_mapping(cls, entry: Any, secret_key: str = "") -> Optional[ConnectionProfile]:
        """Build a profile from a stored entry, or ``None`` when the entry is unusable."""
        if not isinstance(entry, dict):
            return None
        fields = [entry.get(name) for name in ("name", "bucket", "access_key")]
        if not all(isinstance(value, str) and value for value in fields):
            return None
        name, bucket, access_key = fields
        return cls(
            name=name,
            bucket=bucket,
            access_key=access_key,
            secret_key=secret_key,
            region=entry.get("region") or DEFAULT_REGION,
        )

    def to_mapping(self) -> dict[str, str]:
        return {
            "name": self.name,
            "bucket": self.bucket,
            "access_key": self.access_key,
            "region": self.region,
        }

    @property
    def credentials(self) -> Credentials:
        return Credentials(access_key=self.access_key, secret=self.secret_key, bucket=self.bucket)


class KeychainStore:
    """Secret keys by profile name; keychain failures degrade to "no secret"."""

    def __init__(self, service_name: str = KEYCHAIN_SERVICE):
        self._service_name = service_name

    def lookup(self, profile_name: str) -> str:
        try:
            return keyring.get_password(self._service_name, profile_name) or ""
        except KeyringError as exc:
            LOGGER.warning("Could not read secret for profile %s: %s", profile_name, exc)
            return ""

    def store(self, profile_name: str, secret_key: str) -> None:
        if not secret_key:
            self.forget(profile_name)
            return
        try:
            keyring.set_password(self._service_name, profile_name, secret_key)
        except KeyringError as exc:
            LOGGER.warning("Could not store secret for profile %s: %s", profile_name, exc)

    def forget(self, profile_name: str) -> None:
        try:
            keyring.delete_password(self._service_name, profile_name)
        except KeyringError:
            # nothing stored
            return


class ProfileStorage:
    def __init__(self, storage_path: str | Path | None = None, keychain: KeychainStore | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".pys3bucket_profiles.json"
        self._path = Path(storage_path)
        self._keychain = keychain or KeychainStore()

    def load(self) -> list[ConnectionProfile]:
        """Read every usable profile.

        Entries written by hand with a ``secret_key`` are migrated: the secret is
        moved to the keychain and the file is rewritten without it.
        """
        entries = self._read()
        profiles: list[ConnectionProfile] = []
        migrated = False
        for entry in entries:
            profile = ConnectionProfile.from_mapping(entry)
            if profile is None:
                LOGGER.debug("Skipping unusable profile entry %r", entry)
                continue
            plaintext = entry.get("secret_key")
            if plaintext:
                self._keychain.store(profile.name, plaintext)
                profile.secret_key = plaintext
                migrated = True
            else:
                profile.secret_key = self._keychain.lookup(profile.name)
            profiles.append(profile)
        if migrated:
            LOGGER.info("Moved plaintext secrets from %s to the keychain", self._path)
            self._write([profile.to_mapping() for profile in profiles])
        return profiles

    def get(self, name: str) -> ConnectionProfile:
        for profile in self.load():
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' does not exist")

    def save(self, profiles: list[ConnectionProfile]) -> None:
        kept = {profile.name for profile in profiles}
        for entry in self._read():
            name = entry.get("name") if isinstance(entry, dict) else None
            if isinstance(name, str) and name and name not in kept:
                self._keychain.forget(name)
        for profile in profiles:
            self._keychain.store(profile.name, profile.secret_key)
        self._write([profile.to_mapping() for profile in profiles])

    def upsert(self, profile: ConnectionProfile) -> None:
        profiles = [existing for existing in self.load() if existing.name != profile.name]
        profiles.append(profile)
        self.save(profiles)

    def remove(self, name: str) -> bool:
        profiles = self.load()
        remaining = [profile for profile in profiles if profile.name != name]
        if len(remaining) == len(profiles):
            return False
        self.save(remaining)
        return True

    def _read(self) -> list:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable profile file %s: %s", self._path, exc)
            return []
        return data if isinstance(data, list) else []

    def _write(self, data: list[dict[str, str]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
