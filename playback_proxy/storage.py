"""Interaction storage: save, find, list, and clear recordings."""

from __future__ import annotations

import ipaddress
import re
import shutil
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from playback_proxy.config import IGNORED_HEADERS_DEFAULT, Settings
from playback_proxy.errors import InteractionNotFoundError, RepositoryError
from playback_proxy.locks import ReadWriteLock
from playback_proxy.matching import compute_fingerprint
from playback_proxy.models import Interaction

UNKNOWN_SERVICE = "unknown"

_FINGERPRINT_RE = re.compile(r"^[0-9a-f]{64}$")


@runtime_checkable
class InteractionRepository(Protocol):
    """Capability set shared by every interaction store."""

    def save(self, interaction: Interaction) -> None: ...

    def find(self, fingerprint: str) -> Interaction: ...

    def find_all(self) -> list[Interaction]: ...

    def clear(self) -> None: ...

    def count(self) -> int: ...


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def sanitize_service_name(target: str) -> str:
    """Turn a target into a directory name: ``api.example.com:443`` -> ``api_example_com_443``.

    Only host[:port] is kept. IP literals keep their dots.
    """
    for prefix in ("http://", "https://"):
        if target.startswith(prefix):
            target = target[len(prefix) :]
            break

    netloc = re.split(r"[/?#]", target, maxsplit=1)[0]
    if not netloc:
        return UNKNOWN_SERVICE

    host, sep, port = netloc.rpartition(":")
    if not sep or not port.isdigit():
        host = netloc
    if not _is_ip_literal(host.strip("[]")):
        netloc = netloc.replace(".", "_")
    return netloc.replace(":", "_")


class FileSystemRepository:
    """Stores each interaction as ``<base>/<service>/<fingerprint>.json``.

    The fingerprint alone identifies a recording; the service directory only
    groups files for people browsing the recordings.
    """

    def __init__(
        self,
        base_path: Path,
        ignore_headers: frozenset[str] = IGNORED_HEADERS_DEFAULT,
    ) -> None:
        self.base_path = base_path
        self.ignore_headers = ignore_headers
        self._lock = ReadWriteLock()
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RepositoryError(f"failed to create base directory {base_path}") from exc

    def _files(self) -> list[Path]:
        return [p for p in self.base_path.rglob("*.json") if p.is_file()]

    def save(self, interaction: Interaction) -> None:
        """Persist an interaction, overwriting any recording with the same fingerprint."""
        fingerprint = compute_fingerprint(interaction.request, self.ignore_headers)
        service_dir = self.base_path / sanitize_service_name(interaction.metadata.target)
        filepath = service_dir / f"{fingerprint}.json"

        with self._lock.write_locked():
            try:
                service_dir.mkdir(parents=True, exist_ok=True)
                filepath.write_bytes(interaction.model_dump_json(indent=2).encode())
            except OSError as exc:
                raise RepositoryError(f"failed to write interaction file {filepath}") from exc

    def find(self, fingerprint: str) -> Interaction:
        if not _FINGERPRINT_RE.match(fingerprint):
            raise InteractionNotFoundError(fingerprint)

        with self._lock.read_locked():
            matches = sorted(self.base_path.glob(f"*/{fingerprint}.json"))
            if not matches:
                raise InteractionNotFoundError(fingerprint)
            return self._load(matches[0])

    def find_all(self) -> list[Interaction]:
        """Return every stored interaction, most recent first."""
        with self._lock.read_locked():
            interactions = [self._load(path) for path in self._files()]
        return sorted(interactions, key=lambda i: i.timestamp, reverse=True)

    def clear(self) -> None:
        with self._lock.write_locked():
            try:
                for entry in self.base_path.iterdir():
                    if entry.is_dir():
                        shutil.rmtree(entry)
                    else:
                        entry.unlink()
            except OSError as exc:
                raise RepositoryError(f"failed to clear {self.base_path}") from exc

    def count(self) -> int:
        with self._lock.read_locked():
            return len(self._files())

    @staticmethod
    def _load(path: Path) -> Interaction:
        try:
            return Interaction.model_validate_json(path.read_bytes())
        except OSError as exc:
            raise RepositoryError(f"failed to read interaction file {path}") from exc
        except (ValidationError, UnicodeDecodeError) as exc:
            raise RepositoryError(f"failed to decode interaction file {path}") from exc


class InMemoryRepository:
    """Process-local repository with the same contract as FileSystemRepository."""

    def __init__(self, ignore_headers: frozenset[str] = IGNORED_HEADERS_DEFAULT) -> None:
        self.ignore_headers = ignore_headers
        self._interactions: dict[str, Interaction] = {}
        self._lock = ReadWriteLock()

    def save(self, interaction: Interaction) -> None:
        fingerprint = compute_fingerprint(interaction.request, self.ignore_headers)
        with self._lock.write_locked():
            self._interactions[fingerprint] = interaction.model_copy(deep=True)

    def find(self, fingerprint: str) -> Interaction:
        with self._lock.read_locked():
            interaction = self._interactions.get(fingerprint)
        if interaction is None:
            raise InteractionNotFoundError(fingerprint)
        return interaction.model_copy(deep=True)

    def find_all(self) -> list[Interaction]:
        with self._lock.read_locked():
            interactions = [i.model_copy(deep=True) for i in self._interactions.values()]
        return sorted(interactions, key=lambda i: i.timestamp, reverse=True)

    def clear(self) -> None:
        with self._lock.write_locked():
            self._interactions.clear()

    def count(self) -> int:
        with self._lock.read_locked():
            return len(self._interactions)


def create_repository(settings: Settings) -> InteractionRepository:
    """Build the repository selected by ``settings.storage_type``."""
    if settings.storage_type == "memory":
        return InMemoryRepository(ignore_headers=settings.fingerprint_ignore_headers)
    return FileSystemRepository(
        base_path=settings.recordings_dir,
        ignore_headers=settings.fingerprint_ignore_headers,
    )
