"""Network configuration loading for base-deployments library."""

import logging
import os
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import dotenv_values
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import ValidationError

from .constants import (
    CREDENTIAL_REF_ENV,
    ETHERSCAN_V2_API_URL,
    EXPLORER_API_KEY_ENV,
    EXPLORER_API_URL_ENV,
    NETWORK_CONFIG,
)
from .exceptions import ConfigError
from .types import NetworkConfig

logger = logging.getLogger(__name__)

_RAW_KEY = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


def env_prefix(network: str) -> str:
    """Environment variable prefix for a network (EIP-3770 short name)."""
    return NETWORK_CONFIG[network]["short_name"].upper()


class ConfigLoader:
    """Reads network, account and explorer settings from a key-value source."""

    def __init__(
        self,
        env_file: Optional[Union[Path, str]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize the loader.

        Args:
            env_file: Optional .env file; its values are overridden by the
                      environment, matching python-dotenv's default
            environ: Mapping to use instead of os.environ

        Raises:
            ConfigError: If env_file is given but does not exist
        """
        source: Dict[str, str] = {}
        if env_file is not None:
            env_path = Path(env_file)
            if not env_path.is_file():
                raise ConfigError(f"Env file not found: {env_path}")
            source.update(
                {k: v for k, v in dotenv_values(env_path).items() if v is not None}
            )
        source.update(os.environ if environ is None else environ)
        self._source = source

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._source.get(key)
        if value is None or not value.strip():
            return default
        return value.strip()

    def load(self, network: str = "mainnet", require_signer: bool = True) -> NetworkConfig:
        """
        Load and validate the configuration for a network.

        Args:
            network: Network name ("mainnet" or "testnet")
            require_signer: Require a signing credential reference
                            (verification and reporting do not sign)

        Returns:
            NetworkConfig

        Raises:
            ConfigError: If the network is unknown, a required key is
                missing, or the chain id does not match the network
        """
        if network not in NETWORK_CONFIG:
            raise ConfigError(
                f"Unknown network '{network}'. Known networks: {', '.join(NETWORK_CONFIG)}"
            )
        network_info = NETWORK_CONFIG[network]
        prefix = env_prefix(network)

        rpc_key = f"{prefix}_RPC_URL"
        rpc_url = self.get(rpc_key)
        if rpc_url is None:
            raise ConfigError(f"{rpc_key} is not set")
        if not rpc_url.startswith(("http://", "https://")):
            raise ConfigError(f"{rpc_key} must be an http(s) URL")

        chain_key = f"{prefix}_CHAIN_ID"
        raw_chain_id = self.get(chain_key)
        if raw_chain_id is None:
            raise ConfigError(f"{chain_key} is not set")
        try:
            chain_id = int(raw_chain_id, 0)
        except ValueError:
            raise ConfigError(f"{chain_key} must be an integer, got {raw_chain_id!r}") from None
        validate_chain_id(network, chain_id)

        credential_ref = self.get(CREDENTIAL_REF_ENV, "")
        if not credential_ref and require_signer:
            raise ConfigError(f"{CREDENTIAL_REF_ENV} is not set")
        if _RAW_KEY.match(credential_ref):
            # Never echo the value
            raise ConfigError(
                f"{CREDENTIAL_REF_ENV} looks like a raw private key; "
                "use a reference such as env:DEPLOYER_PRIVATE_KEY or file:/path/to/key"
            )
        if credential_ref and not credential_ref.startswith(("env:", "file:")):
            raise ConfigError(
                f"{CREDENTIAL_REF_ENV} must be an env:NAME or file:PATH reference"
            )

        config = NetworkConfig(
            network=network,
            chain_id=chain_id,
            rpc_url=rpc_url,
            explorer_api_key=self.get(EXPLORER_API_KEY_ENV),
            credential_ref=credential_ref,
            explorer_url=network_info["block_explorer_url"],
            explorer_api_url=self.get(EXPLORER_API_URL_ENV, ETHERSCAN_V2_API_URL),
        )
        logger.debug(
            "Loaded %s config: chain_id=%d, credential=%s",
            network,
            chain_id,
            credential_ref.split(":", 1)[0] or "none",
        )
        return config

    def load_signer(self, config: NetworkConfig) -> LocalAccount:
        """
        Resolve the configured credential reference into a signing account.

        Raises:
            ConfigError: If the reference cannot be resolved or does not
                hold a valid private key
        """
        scheme, _, target = config.credential_ref.partition(":")
        if scheme == "env":
            secret = self.get(target)
            if secret is None:
                raise ConfigError(f"Credential variable {target} is not set")
        elif scheme == "file":
            try:
                secret = Path(target).expanduser().read_text().strip()
            except OSError as e:
                raise ConfigError(f"Cannot read credential file {target}: {e.strerror}") from None
        else:
            raise ConfigError(f"Unsupported credential reference scheme '{scheme}'")

        try:
            return Account.from_key(secret)
        except (ValueError, TypeError, ValidationError):
            # The underlying message may contain key material
            raise ConfigError(
                f"Credential referenced by {scheme}:{target} is not a valid private key"
            ) from None


def validate_chain_id(network: str, chain_id: int) -> None:
    """
    Check a chain id against the expected identifier of a network.

    Raises:
        ConfigError: If they differ
    """
    expected = NETWORK_CONFIG[network]["chain_id"]
    if chain_id != expected:
        raise ConfigError(
            f"Chain id {chain_id} does not match {network} "
            f"({NETWORK_CONFIG[network]['chain_name']}, chain id {expected})"
        )
