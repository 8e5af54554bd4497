"""Configuration constants for base-deployments library."""

# Network configuration based on ethereum-lists/chains
# EIP-3770 chain short names prefix the environment variables
NETWORK_CONFIG = {
    "mainnet": {
        "chain_id": 8453,
        "chain_name": "Base",
        "short_name": "base",  # EIP-3770
        "block_explorer_url": "https://basescan.org",
    },
    "testnet": {
        "chain_id": 84532,
        "chain_name": "Base Sepolia",
        "short_name": "basesep",  # EIP-3770
        "block_explorer_url": "https://sepolia.basescan.org",
    },
}

# Etherscan v2 serves every supported chain from one endpoint keyed by chainid
ETHERSCAN_V2_API_URL = "https://api.etherscan.io/v2/api"

# Environment variable names that are not network specific
EXPLORER_API_KEY_ENV = "ETHERSCAN_API_KEY"
EXPLORER_API_URL_ENV = "ETHERSCAN_API_URL"
CREDENTIAL_REF_ENV = "DEPLOYER_KEY"
SOLC_BINARY_ENV = "SOLC_BINARY"

# Transport
HTTP_TIMEOUT = 30
MAX_ATTEMPTS = 5
BACKOFF_BASE = 1.0  # seconds, doubled after each failed attempt
RETRY_STATUS_CODES = (429, 500, 502, 503, 504)

# Deployment
DEFAULT_CONFIRMATIONS = 1
CONFIRMATION_TIMEOUT = 120.0
CONFIRMATION_POLL_INTERVAL = 2.0
GAS_PADDING = 1.2

# Verification (the explorer queues requests; a few minutes is usual)
VERIFY_TIMEOUT = 180.0
VERIFY_POLL_INTERVAL = 5.0

# Compilation
DEFAULT_OPTIMIZER_RUNS = 200
