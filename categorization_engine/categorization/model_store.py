"""
Versioned, content-hashed artifact store for classifier snapshots.

Snapshots are opaque byte blobs written under

    <root>/<model_name>/v0003-<sha256[:12]>.joblib

with a manifest.json per model listing every version, its full SHA-256 digest,
size, creation time and caller-supplied metadata. Saving a payload identical
to the latest version returns that version instead of writing a new one.
Reads verify the digest before returning bytes.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Final

from categorization_engine.core.exceptions import ModelStoreError
from categorization_engine.core.logging import get_logger

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

MANIFEST_FILENAME: Final[str] = "manifest.json"
ARTIFACT_SUFFIX: Final[str] = ".joblib"
DIGEST_PREFIX_CHARS: Final[int] = 12


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class ModelSnapshot:
    """Manifest entry for one stored artifact version.

    Attributes:
        model_name: Logical model name, e.g. "category_classifier".
        version: Monotonically increasing version number, starting at 1.
        sha256: Hex digest of the artifact bytes.
        filename: Artifact file name relative to the model directory.
        size_bytes: Artifact size.
        created_at: ISO-8601 UTC timestamp.
        metadata: Caller-supplied metadata (trainer, example count, ...).
    """

    model_name: str
    version: int
    sha256: str
    filename: str
    size_bytes: int
    created_at: str
    metadata: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# ModelStore
# =============================================================================


class ModelStore:
    """Filesystem store of versioned model artifacts.

    Not safe for concurrent writers; callers serialize saves.
    """

    def __init__(self, root_dir: Path) -> None:
        self._root_dir = Path(root_dir)

    def _model_dir(self, model_name: str) -> Path:
        return self._root_dir / model_name

    def _read_manifest(self, model_name: str) -> list[ModelSnapshot]:
        manifest_path = self._model_dir(model_name) / MANIFEST_FILENAME
        if not manifest_path.exists():
            return []
        try:
            entries = json.loads(manifest_path.read_text(encoding="utf-8"))
            return [ModelSnapshot(**entry) for entry in entries]
        except (json.JSONDecodeError, TypeError) as e:
            raise ModelStoreError(f"Corrupt manifest at {manifest_path}: {e}") from e

    def _write_manifest(self, model_name: str, snapshots: list[ModelSnapshot]) -> None:
        manifest_path = self._model_dir(model_name) / MANIFEST_FILENAME
        tmp_path = manifest_path.with_suffix(".tmp")
        tmp_path.write_text(
            json.dumps([asdict(s) for s in snapshots], indent=2), encoding="utf-8"
        )
        tmp_path.replace(manifest_path)

    def list_versions(self, model_name: str) -> list[ModelSnapshot]:
        """Return all stored versions, oldest first."""
        return self._read_manifest(model_name)

    def latest(self, model_name: str) -> ModelSnapshot | None:
        snapshots = self._read_manifest(model_name)
        return snapshots[-1] if snapshots else None

    def save(
        self,
        model_name: str,
        payload: bytes,
        metadata: dict[str, Any] | None = None,
    ) -> ModelSnapshot:
        """Store payload as a new version unless it equals the latest one.

        Raises:
            ModelStoreError: If the artifact cannot be written.
        """
        digest = hashlib.sha256(payload).hexdigest()
        snapshots = self._read_manifest(model_name)
        if snapshots and snapshots[-1].sha256 == digest:
            logger.info(
                "model_snapshot_unchanged",
                model_name=model_name,
                version=snapshots[-1].version,
            )
            return snapshots[-1]

        version = snapshots[-1].version + 1 if snapshots else 1
        filename = f"v{version:04d}-{digest[:DIGEST_PREFIX_CHARS]}{ARTIFACT_SUFFIX}"
        model_dir = self._model_dir(model_name)
        try:
            model_dir.mkdir(parents=True, exist_ok=True)
            (model_dir / filename).write_bytes(payload)
        except OSError as e:
            raise ModelStoreError(f"Failed to write {model_name} v{version}: {e}") from e

        snapshot = ModelSnapshot(
            model_name=model_name,
            version=version,
            sha256=digest,
            filename=filename,
            size_bytes=len(payload),
            created_at=datetime.now(timezone.utc).isoformat(),
            metadata=dict(metadata or {}),
        )
        self._write_manifest(model_name, [*snapshots, snapshot])
        logger.info(
            "model_snapshot_saved",
            model_name=model_name,
            version=version,
            sha256=digest,
            size_bytes=len(payload),
        )
        return snapshot

    def load(self, model_name: str, version: int | None = None) -> bytes | None:
        """Return artifact bytes for version (latest when None).

        Returns:
            The payload, or None if the model has no stored versions.

        Raises:
            ModelStoreError: If the version is unknown or fails digest check.
        """
        snapshots = self._read_manifest(model_name)
        if not snapshots:
            return None

        if version is None:
            snapshot = snapshots[-1]
        else:
            matching = [s for s in snapshots if s.version == version]
            if not matching:
                raise ModelStoreError(f"Unknown version {version} of {model_name}")
            snapshot = matching[0]

        path = self._model_dir(model_name) / snapshot.filename
        try:
            payload = path.read_bytes()
        except OSError as e:
            raise ModelStoreError(f"Failed to read {path}: {e}") from e

        if hashlib.sha256(payload).hexdigest() != snapshot.sha256:
            raise ModelStoreError(f"Digest mismatch for {path}")
        return payload
