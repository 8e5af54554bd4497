"""Unit tests for the local deployment log and verification cache."""

import json
from pathlib import Path

import pytest

from base_deployments.deployments import (
    DeploymentLog,
    load_verification_cache,
    save_verification_cache,
)
from base_deployments.exceptions import DeploymentError, RecordNotFoundError
from base_deployments.types import DeploymentRecord, VerificationResult, VerificationStatus

from conftest import TX_HASH

MAINNET_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
TESTNET_ADDRESS = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"


def _record(**overrides) -> DeploymentRecord:
    fields = {
        "contract_address": MAINNET_ADDRESS,
        "transaction_hash": TX_HASH,
        "deployed_at": "2026-10-03T09:15:00Z",
        "compiler_version": "0.8.24+commit.e11b9ed9",
        "contract_name": "Counter",
        "deployer": "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23",
        "block_number": 150,
        "constructor_args": "0" * 63 + "5",
    }
    fields.update(overrides)
    return DeploymentRecord(**fields)


class TestDeploymentLog:
    """Test the DeploymentLog class."""

    def test_empty_log(self, temp_state_dir: Path):
        """Test that a missing log file has no records."""
        log = DeploymentLog(temp_state_dir)

        assert log.records() == []
        assert not log.has_transaction(TX_HASH)

    def test_reads_existing_log(self, sample_log: Path, temp_state_dir: Path):
        """Test that records are read in append order."""
        records = DeploymentLog(temp_state_dir).records()

        assert [r.network for r in records] == ["mainnet", "testnet"]
        assert records[0].block_number == 100
        assert records[1].chain_id == 84532

    def test_filter_by_network(self, sample_log: Path, temp_state_dir: Path):
        """Test that records can be restricted to one network."""
        records = DeploymentLog(temp_state_dir).records("testnet")

        assert len(records) == 1
        assert records[0].contract_address == TESTNET_ADDRESS

    def test_round_trip_preserves_every_field(self, tmp_path: Path):
        """Test that a logged record reads back identical."""
        log = DeploymentLog(tmp_path / "state")
        record = _record()

        log.append(record)

        assert log.records() == [record]
        assert log.by_transaction(TX_HASH.upper().replace("0X", "0x")) == record

    def test_append_writes_one_json_line(self, tmp_path: Path):
        """Test the on-disk format of the log."""
        log = DeploymentLog(tmp_path)
        log.append(_record())

        lines = log.paths.deployments.read_text().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["transaction_hash"] == TX_HASH

    def test_duplicate_transaction_rejected(self, tmp_path: Path):
        """Test that the same transaction cannot be logged twice."""
        log = DeploymentLog(tmp_path)
        log.append(_record())

        with pytest.raises(DeploymentError, match="already logged"):
            log.append(_record(block_number=151))

        assert len(log.records()) == 1

    def test_latest_for_address(self, sample_log: Path, temp_state_dir: Path):
        """Test that the most recent deployment at an address wins."""
        log = DeploymentLog(temp_state_dir)
        log.append(_record(transaction_hash="0x" + "33" * 32, block_number=300))

        record = log.latest_for_address(MAINNET_ADDRESS.lower())

        assert record.block_number == 300

    def test_latest_for_address_respects_network(self, sample_log: Path, temp_state_dir: Path):
        """Test that a mainnet address is not found on testnet."""
        with pytest.raises(RecordNotFoundError, match="on testnet"):
            DeploymentLog(temp_state_dir).latest_for_address(MAINNET_ADDRESS, "testnet")

    def test_unknown_address(self, sample_log: Path, temp_state_dir: Path):
        """Test that an address never deployed raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            DeploymentLog(temp_state_dir).latest_for_address("0x" + "00" * 20)

    def test_unknown_transaction(self, temp_state_dir: Path):
        with pytest.raises(RecordNotFoundError):
            DeploymentLog(temp_state_dir).by_transaction(TX_HASH)

    def test_corrupted_line(self, temp_state_dir: Path):
        """Test that a corrupted log is reported with its line number."""
        (temp_state_dir / "deployments.jsonl").write_text("{not json}\n")

        with pytest.raises(DeploymentError, match="line 1"):
            DeploymentLog(temp_state_dir).records()


class TestArtifacts:
    """Test compile artifact storage."""

    def test_artifact_round_trip(self, tmp_path: Path, compiled_counter):
        """Test that the compile artifact is restored exactly."""
        log = DeploymentLog(tmp_path)
        record = _record()

        path = log.save_artifact(record, compiled_counter)

        assert path == tmp_path / "artifacts" / f"{TX_HASH}.json"
        restored = log.load_artifact(record)
        assert restored.standard_input == compiled_counter.standard_input
        assert restored.bytecode == compiled_counter.bytecode
        assert restored.qualified_name == "contracts/Counter.sol:Counter"

    def test_missing_artifact(self, tmp_path: Path):
        with pytest.raises(RecordNotFoundError, match="artifact"):
            DeploymentLog(tmp_path).load_artifact(_record())


class TestVerificationCache:
    """Test verification cache I/O."""

    def test_missing_cache_is_empty(self, tmp_path: Path):
        assert load_verification_cache(tmp_path / "verifications.json") == {}

    def test_corrupted_cache_is_empty(self, tmp_path: Path):
        """Test that a corrupted cache does not break verification."""
        cache_path = tmp_path / "verifications.json"
        cache_path.write_text("{broken")

        assert load_verification_cache(cache_path) == {}

    def test_unknown_status_is_empty(self, tmp_path: Path):
        cache_path = tmp_path / "verifications.json"
        cache_path.write_text(json.dumps({"0xabc": {"status": "weird", "explorer_url": ""}}))

        assert load_verification_cache(cache_path) == {}

    def test_save_and_load(self, tmp_path: Path):
        """Test that saved results load back unchanged."""
        cache_path = tmp_path / "nested" / "verifications.json"
        cache = {
            MAINNET_ADDRESS.lower(): VerificationResult(
                status=VerificationStatus.VERIFIED,
                explorer_url="https://basescan.org/address/x#code",
                guid="guid-123",
                message="Pass - Verified",
            )
        }

        save_verification_cache(cache, cache_path)

        assert load_verification_cache(cache_path) == cache
