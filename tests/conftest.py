"""Shared pytest fixtures for base-deployments tests."""

import json
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import pytest
import responses

from base_deployments.config import ConfigLoader
from base_deployments.constants import ETHERSCAN_V2_API_URL
from base_deployments.types import CompiledContract

RPC_URL = "http://rpc.test"
EXPLORER_API_URL = ETHERSCAN_V2_API_URL

# Well-known throwaway key from the Ethereum documentation
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

CONTRACT_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
TX_HASH = "0x" + "ab" * 32
COUNTER_BYTECODE = "6080604052348015600f57600080fd5b5060aa80601d6000396000f3fe"
SOLC_VERSION_OUTPUT = (
    "solc, the solidity compiler commandline interface\n"
    "Version: 0.8.24+commit.e11b9ed9.Linux.g++\n"
)
COUNTER_ABI = [
    {
        "inputs": [],
        "name": "increment",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "number",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def counter_source(fixtures_dir: Path) -> Path:
    """Return path to the sample Counter contract."""
    return fixtures_dir / "Counter.sol"


@pytest.fixture
def temp_state_dir(tmp_path: Path) -> Path:
    """Create a temporary state directory for tests."""
    state_dir = tmp_path / ".base-deployments"
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir


@pytest.fixture
def sample_log(temp_state_dir: Path, fixtures_dir: Path) -> Path:
    """Copy the sample deployment log into the temporary state directory."""
    log_path = temp_state_dir / "deployments.jsonl"
    log_path.write_text((fixtures_dir / "sample_deployments.jsonl").read_text())
    return log_path


@pytest.fixture
def env() -> Dict[str, str]:
    """A complete, valid mainnet environment."""
    return {
        "BASE_RPC_URL": RPC_URL,
        "BASE_CHAIN_ID": "8453",
        "BASESEP_RPC_URL": RPC_URL,
        "BASESEP_CHAIN_ID": "84532",
        "ETHERSCAN_API_KEY": "TESTKEY",
        "DEPLOYER_KEY": "env:DEPLOYER_PRIVATE_KEY",
        "DEPLOYER_PRIVATE_KEY": TEST_PRIVATE_KEY,
    }


@pytest.fixture
def loader(env: Dict[str, str]) -> ConfigLoader:
    """ConfigLoader reading the test environment only."""
    return ConfigLoader(environ=env)


@pytest.fixture
def mainnet_config(loader: ConfigLoader):
    return loader.load("mainnet")


@pytest.fixture
def signer(loader: ConfigLoader, mainnet_config):
    return loader.load_signer(mainnet_config)


@pytest.fixture
def compiled_counter() -> CompiledContract:
    """A CompiledContract as compile_contract() would return for Counter.sol."""
    return CompiledContract(
        name="Counter",
        source_path="contracts/Counter.sol",
        abi=COUNTER_ABI,
        bytecode="0x" + COUNTER_BYTECODE,
        compiler_version="0.8.24+commit.e11b9ed9",
        standard_input={
            "language": "Solidity",
            "sources": {"contracts/Counter.sol": {"content": "contract Counter {}"}},
            "settings": {"optimizer": {"enabled": True, "runs": 200}},
        },
    )


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class FakeNode:
    """Answers JSON-RPC requests like an Ethereum node would."""

    def __init__(self):
        self.chain_id = 8453
        self.balance = 10**18
        self.pending_nonce = 3
        self.latest_nonce = 3
        self.gas_estimate = 100_000
        self.base_fee: Optional[int] = 1_000_000
        self.priority_fee = 1_000
        self.gas_price = 2_000_000
        self.head = 100
        self.receipt_block = 100
        self.receipt_status = "0x1"
        self.pending_polls = 0  # receipt polls answered with null first
        self.errors: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.raw_transactions: List[str] = []
        self.estimates: List[Dict[str, Any]] = []

    def handler(self, request):
        body = json.loads(request.body)
        method = body["method"]
        self.calls.append(method)
        if method in self.errors:
            payload = {"jsonrpc": "2.0", "id": body["id"], "error": self.errors[method]}
        else:
            result = getattr(self, method)(body["params"])
            payload = {"jsonrpc": "2.0", "id": body["id"], "result": result}
        return (200, {}, json.dumps(payload))

    def eth_chainId(self, params):
        return hex(self.chain_id)

    def eth_getTransactionCount(self, params):
        return hex(self.pending_nonce if params[1] == "pending" else self.latest_nonce)

    def eth_getBalance(self, params):
        return hex(self.balance)

    def eth_estimateGas(self, params):
        self.estimates.append(params[0])
        return hex(self.gas_estimate)

    def eth_getBlockByNumber(self, params):
        block = {"number": hex(self.head)}
        if self.base_fee is not None:
            block["baseFeePerGas"] = hex(self.base_fee)
        return block

    def eth_maxPriorityFeePerGas(self, params):
        return hex(self.priority_fee)

    def eth_gasPrice(self, params):
        return hex(self.gas_price)

    def eth_sendRawTransaction(self, params):
        self.raw_transactions.append(params[0])
        return TX_HASH

    def eth_getTransactionReceipt(self, params):
        if self.pending_polls > 0:
            self.pending_polls -= 1
            return None
        return {
            "transactionHash": params[0],
            "blockNumber": hex(self.receipt_block),
            "contractAddress": CONTRACT_ADDRESS,
            "status": self.receipt_status,
        }

    def eth_blockNumber(self, params):
        return hex(self.head)


@pytest.fixture
def node():
    """Fake JSON-RPC node served at RPC_URL."""
    fake = FakeNode()
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add_callback(
            responses.POST, RPC_URL, callback=fake.handler, content_type="application/json"
        )
        fake.rsps = rsps
        yield fake


class FakeExplorer:
    """Etherscan-style verification API with scripted answers."""

    def __init__(self):
        self.submit_answers: List[Dict[str, str]] = [
            {"status": "1", "message": "OK", "result": "guid-123"}
        ]
        self.status_answers: List[Dict[str, str]] = [
            {"status": "0", "message": "NOTOK", "result": "Pending in queue"},
            {"status": "1", "message": "OK", "result": "Pass - Verified"},
        ]
        self.submissions: List[Dict[str, List[str]]] = []
        self.status_queries: List[Dict[str, List[str]]] = []

    @staticmethod
    def _next(answers: List[Dict[str, str]]) -> Dict[str, str]:
        return answers.pop(0) if len(answers) > 1 else answers[0]

    def submit(self, request):
        self.submissions.append(parse_qs(request.body))
        return (200, {}, json.dumps(self._next(self.submit_answers)))

    def status(self, request):
        self.status_queries.append(parse_qs(urlparse(request.url).query))
        return (200, {}, json.dumps(self._next(self.status_answers)))


@pytest.fixture
def explorer(node):
    """Fake explorer API, registered on the same mock as the node."""
    fake = FakeExplorer()
    node.rsps.add_callback(
        responses.POST, EXPLORER_API_URL, callback=fake.submit, content_type="application/json"
    )
    node.rsps.add_callback(
        responses.GET, EXPLORER_API_URL, callback=fake.status, content_type="application/json"
    )
    return fake


class FakeSolc:
    """Stands in for subprocess.run when the code under test invokes solc."""

    def __init__(self):
        self.version_output = SOLC_VERSION_OUTPUT
        self.diagnostics: List[Dict[str, str]] = []
        self.missing = False
        self.inputs: List[Dict[str, Any]] = []

    def run(self, args, **kwargs):
        if self.missing:
            raise FileNotFoundError(args[0])
        if args[1] == "--version":
            return subprocess.CompletedProcess(args, 0, stdout=self.version_output, stderr="")

        standard_input = json.loads(kwargs["input"])
        self.inputs.append(standard_input)
        contracts: Dict[str, Any] = {}
        for key, source in standard_input["sources"].items():
            if "contract Counter" in source["content"]:
                contracts[key] = {
                    "Counter": {
                        "abi": COUNTER_ABI,
                        "evm": {"bytecode": {"object": COUNTER_BYTECODE}},
                        "metadata": "{}",
                    }
                }
        output: Dict[str, Any] = {"sources": {}, "contracts": contracts}
        if self.diagnostics:
            output["errors"] = self.diagnostics
        return subprocess.CompletedProcess(args, 0, stdout=json.dumps(output), stderr="")


@pytest.fixture
def solc(monkeypatch) -> FakeSolc:
    """Replace subprocess.run in the compiler module with a fake solc."""
    fake = FakeSolc()
    monkeypatch.setattr("base_deployments.compiler.subprocess.run", fake.run)
    return fake
