"""
Test suite for identity module

Tests deterministic identifier derivation and the namespace file protocol.
"""

import logging
import os
import stat
import uuid
from pathlib import Path

import pytest

from hyperfx.exceptions import NamespaceError, NamespaceNotFoundError
from hyperfx.identity import (
    derive_id, role_key, uuid_to_ledger_id, ledger_id_to_uuid,
    load_namespace, generate_namespace, resolve_namespace,
    default_hfx_dir, NAMESPACE_FILENAME
)


class TestDeriveId:
    """Test deterministic identifier derivation"""

    def setup_method(self):
        """Set up test fixtures"""
        self.namespace = uuid.UUID("6f1c1f7e-2b1a-4c38-9d41-3f0b8c5d2e10")

    def test_deterministic(self):
        """Test repeated calls return the same identifier"""
        first = derive_id(self.namespace, "branch_liquidity_840")
        second = derive_id(self.namespace, "branch_liquidity_840")
        assert first == second

    def test_distinct_keys(self):
        """Test different keys give different identifiers"""
        keys = [
            role_key(prefix, ledger)
            for prefix in ("branch_liquidity", "branch_overs", "branch_shorts", "branch_control")
            for ledger in (840, 826, 978, 392)
        ] + ["branch_fees"]
        ids = {derive_id(self.namespace, key) for key in keys}
        assert len(ids) == len(keys)

    def test_distinct_namespaces(self):
        """Test the same key under different namespaces differs"""
        other = uuid.UUID("0b7a9c32-5e44-4d0e-8a6f-1f2d3c4b5a69")
        assert derive_id(self.namespace, "branch_fees") != derive_id(other, "branch_fees")

    def test_uuid_v5_vector(self):
        """Test against the standard UUID v5 test vector, read little-endian"""
        expected = uuid.UUID("886313e1-3b8a-5372-9b90-0c9aee199e5d")
        result = derive_id(uuid.NAMESPACE_DNS, "python.org")
        assert result == int.from_bytes(expected.bytes, "little")
        assert ledger_id_to_uuid(result) == expected

    def test_identifier_range(self):
        """Test identifiers are non-zero 128-bit values"""
        result = derive_id(self.namespace, "branch_overs_978")
        assert 0 < result < (1 << 128)

    def test_role_key(self):
        """Test role key construction"""
        assert role_key("branch_liquidity", 840) == "branch_liquidity_840"
        assert role_key("branch_fees") == "branch_fees"
        assert role_key("branch_control", 36) == "branch_control_36"


class TestLedgerIdConversion:
    """Test UUID <-> ledger id conversion"""

    def test_round_trip(self):
        """Test conversion is lossless"""
        value = uuid.uuid4()
        assert ledger_id_to_uuid(uuid_to_ledger_id(value)) == value

    def test_byte_order(self):
        """Test the first UUID byte is the least significant"""
        value = uuid.UUID(bytes=bytes([1]) + bytes(15))
        assert uuid_to_ledger_id(value) == 1

    def test_out_of_range(self):
        """Test out of range ids are rejected"""
        with pytest.raises(ValueError):
            ledger_id_to_uuid(-1)
        with pytest.raises(ValueError):
            ledger_id_to_uuid(1 << 128)


class TestNamespaceFile:
    """Test namespace load/generate protocol"""

    def test_default_directory(self):
        """Test default state directory"""
        assert default_hfx_dir() == Path.home() / ".hyperfx"

    def test_load_missing(self, tmp_path):
        """Test loading before generation fails explicitly"""
        with pytest.raises(NamespaceNotFoundError):
            load_namespace(tmp_path)

    def test_generate_then_load(self, tmp_path):
        """Test a generated namespace is read back unchanged"""
        hfx_dir = tmp_path / "hfx"
        generated = generate_namespace(hfx_dir)
        assert load_namespace(hfx_dir) == generated

        raw = (hfx_dir / NAMESPACE_FILENAME).read_bytes()
        assert raw == generated.bytes
        assert len(raw) == 16

    def test_file_permissions(self, tmp_path):
        """Test namespace file and directory are private"""
        hfx_dir = tmp_path / "hfx"
        generate_namespace(hfx_dir)

        file_mode = stat.S_IMODE(os.stat(hfx_dir / NAMESPACE_FILENAME).st_mode)
        dir_mode = stat.S_IMODE(os.stat(hfx_dir).st_mode)
        assert file_mode == 0o600
        assert dir_mode == 0o700

    def test_generate_never_overwrites(self, tmp_path):
        """Test an existing namespace is never replaced"""
        original = generate_namespace(tmp_path)

        with pytest.raises(NamespaceError, match="Refusing to overwrite"):
            generate_namespace(tmp_path)

        assert load_namespace(tmp_path) == original

    def test_corrupt_file(self, tmp_path):
        """Test wrong-length files are rejected, not regenerated"""
        (tmp_path / NAMESPACE_FILENAME).write_bytes(b"short")

        with pytest.raises(NamespaceError) as exc_info:
            load_namespace(tmp_path)
        assert not isinstance(exc_info.value, NamespaceNotFoundError)

        with pytest.raises(NamespaceError):
            resolve_namespace(tmp_path, allow_generate=True)

    def test_nil_namespace(self, tmp_path):
        """Test the nil UUID is rejected"""
        (tmp_path / NAMESPACE_FILENAME).write_bytes(bytes(16))

        with pytest.raises(NamespaceError, match="nil"):
            load_namespace(tmp_path)

    def test_resolve_without_generation(self, tmp_path):
        """Test generation only happens when the caller allows it"""
        with pytest.raises(NamespaceNotFoundError):
            resolve_namespace(tmp_path, allow_generate=False)
        assert not (tmp_path / NAMESPACE_FILENAME).exists()

    def test_resolve_with_generation(self, tmp_path, caplog):
        """Test generate-on-missing and stable reloads"""
        with caplog.at_level(logging.INFO, logger="hyperfx.identity"):
            first = resolve_namespace(tmp_path, allow_generate=True)
            second = resolve_namespace(tmp_path, allow_generate=True)

        assert first == second
        levels = [record.levelno for record in caplog.records]
        assert logging.WARNING in levels  # generation
        assert logging.INFO in levels     # subsequent load


if __name__ == "__main__":
    pytest.main([__file__])
