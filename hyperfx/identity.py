"""
Deterministic Identity Module

Derives stable 128-bit ledger identifiers for system accounts from a
deployment namespace and a role key, and manages the namespace file.

The namespace is the root of every derived identifier. Once an account has
been created under it, changing it orphans every system account in the
ledger engine, so it is never overwritten.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Union

from .exceptions import NamespaceError, NamespaceNotFoundError

logger = logging.getLogger("hyperfx.identity")

HFX_DIR_NAME = ".hyperfx"
NAMESPACE_FILENAME = "namespace"

_UINT128_MAX = (1 << 128) - 1


def default_hfx_dir() -> Path:
    """Per-user state directory, ~/.hyperfx"""
    return Path.home() / HFX_DIR_NAME


def role_key(prefix: str, ledger: Optional[int] = None) -> str:
    """
    Build the derivation key for a role, e.g. 'branch_liquidity_840'.
    Roles that exist once per deployment take no ledger suffix.
    """
    if ledger is None:
        return prefix
    return f"{prefix}_{ledger}"


def uuid_to_ledger_id(value: uuid.UUID) -> int:
    """Ledger engines encode 128-bit ids little-endian; read the UUID bytes that way"""
    return int.from_bytes(value.bytes, "little")


def ledger_id_to_uuid(value: int) -> uuid.UUID:
    """Inverse of uuid_to_ledger_id"""
    if value < 0 or value > _UINT128_MAX:
        raise ValueError(f"Ledger id out of 128-bit range: {value}")
    return uuid.UUID(bytes=value.to_bytes(16, "little"))


def derive_id(namespace: uuid.UUID, name: str) -> int:
    """
    Derive a deterministic ledger identifier (UUID v5) for a name

    Args:
        namespace: Deployment namespace
        name: Role key, see role_key()

    Returns:
        128-bit unsigned identifier, identical for identical inputs
    """
    return uuid_to_ledger_id(uuid.uuid5(namespace, name))


def _namespace_path(hfx_dir: Union[str, Path]) -> Path:
    return Path(hfx_dir) / NAMESPACE_FILENAME


def load_namespace(hfx_dir: Union[str, Path]) -> uuid.UUID:
    """
    Load the persisted namespace

    Args:
        hfx_dir: Directory holding the namespace file

    Returns:
        The deployment namespace

    Raises:
        NamespaceNotFoundError: If no namespace has been generated yet
        NamespaceError: If the file is unreadable or corrupt
    """
    path = _namespace_path(hfx_dir)
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        raise NamespaceNotFoundError(f"Namespace file does not exist: {path}") from None
    except OSError as e:
        raise NamespaceError(f"Failed to read namespace file (check permissions?): {e}") from e

    if len(raw) != 16:
        raise NamespaceError(
            f"Namespace file {path} is corrupt: expected 16 bytes, got {len(raw)}"
        )

    namespace = uuid.UUID(bytes=raw)
    if namespace.int == 0:
        raise NamespaceError(f"Namespace file {path} holds the nil UUID")

    logger.info(f"Existing namespace file found: {path} namespace={namespace}")
    return namespace


def generate_namespace(hfx_dir: Union[str, Path]) -> uuid.UUID:
    """
    Generate a fresh namespace and persist it

    The file is created exclusively; an existing namespace is never replaced.

    Raises:
        NamespaceError: If a namespace already exists or cannot be written
    """
    directory = Path(hfx_dir)
    path = _namespace_path(directory)
    namespace = uuid.uuid4()

    try:
        directory.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError:
        raise NamespaceError(f"Refusing to overwrite existing namespace file: {path}") from None
    except OSError as e:
        raise NamespaceError(f"Failed to write namespace file (check permissions?): {e}") from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(namespace.bytes)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        path.unlink(missing_ok=True)
        raise NamespaceError(f"Failed to write namespace file: {e}") from e

    logger.warning(
        f"Namespace file did not exist, new namespace generated and written: "
        f"{path} namespace={namespace}"
    )
    return namespace


def resolve_namespace(hfx_dir: Union[str, Path], allow_generate: bool = False) -> uuid.UUID:
    """
    Load the namespace, generating one only when the caller allows it

    Args:
        hfx_dir: Directory holding the namespace file
        allow_generate: Generate and persist a namespace if none exists

    Raises:
        NamespaceNotFoundError: If missing and allow_generate is False
    """
    try:
        return load_namespace(hfx_dir)
    except NamespaceNotFoundError:
        if not allow_generate:
            raise
    return generate_namespace(hfx_dir)
