"""
Application constants.

Centralized constants for the application.
"""

# ========================================================================
# BLOCKCHAIN CONSTANTS
# ========================================================================

# Blockchain operation timeouts (in seconds)
BLOCKCHAIN_RPC_TIMEOUT = 30.0  # RPC provider HTTP timeout
RECEIPT_TIMEOUT = 120.0  # Bounded wait for a transaction receipt
RECEIPT_POLL_INTERVAL = 2.0  # Delay between receipt polls

# Retry settings
RPC_MAX_ATTEMPTS = 3  # Total attempts across endpoints per chain call

# Gas settings
GAS_BUFFER_PERCENT = 20  # Safety buffer added to estimate_gas
FEE_BUMP_PERCENT = 150  # Fee multiplier for cancel / speed-up replacements
NATIVE_TRANSFER_GAS_LIMIT = 21000
ERC20_APPROVE_GAS_LIMIT = 50000
UNISWAP_SWAP_GAS_LIMIT = 200000

# Speed tiers as a percentage of the quoted fee (advisory only)
SPEED_TIERS = {
    "slow": (80, "~5 minutes"),
    "standard": (100, "~2 minutes"),
    "fast": (120, "~30 seconds"),
}

# Nonce management
NONCE_STUCK_THRESHOLD = 5  # Max pending transactions before warning

# Ether has 18 decimals
ETHER_DECIMALS = 18

# ========================================================================
# SWAP CONSTANTS (Uniswap V2 on Sepolia)
# ========================================================================

UNISWAP_V2_ROUTER = {
    "sepolia": "0xC532a74256D3Db42D0Bf7a0400fEFDbad7694008",
}

WETH_ADDRESS = {
    "sepolia": "0x7b79995e5f793A07Bc00c21412e50Ecae098E7f9",
}

SWAP_TOKENS = {
    "sepolia": {
        "WETH": "0x7b79995e5f793A07Bc00c21412e50Ecae098E7f9",
        "DAI": "0x68194a729C2450ad26072b3D33ADaCbcef39D574",
        "USDC": "0x94a9D9AC8a22534E3FaCa9F4e7F2E2cf85d5E4C8",
    },
}

SWAP_SLIPPAGE_BPS = 50  # 0.5%
SWAP_DEADLINE_SECONDS = 20 * 60

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [
            {"name": "_owner", "type": "address"},
            {"name": "_spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_spender", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
]

UNISWAP_V2_ROUTER_ABI = [
    {
        "inputs": [
            {"name": "amountIn", "type": "uint256"},
            {"name": "path", "type": "address[]"},
        ],
        "name": "getAmountsOut",
        "outputs": [{"name": "amounts", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "amountOutMin", "type": "uint256"},
            {"name": "path", "type": "address[]"},
            {"name": "to", "type": "address"},
            {"name": "deadline", "type": "uint256"},
        ],
        "name": "swapExactETHForTokens",
        "outputs": [{"name": "amounts", "type": "uint256[]"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "amountIn", "type": "uint256"},
            {"name": "amountOutMin", "type": "uint256"},
            {"name": "path", "type": "address[]"},
            {"name": "to", "type": "address"},
            {"name": "deadline", "type": "uint256"},
        ],
        "name": "swapExactTokensForETH",
        "outputs": [{"name": "amounts", "type": "uint256[]"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "amountIn", "type": "uint256"},
            {"name": "amountOutMin", "type": "uint256"},
            {"name": "path", "type": "address[]"},
            {"name": "to", "type": "address"},
            {"name": "deadline", "type": "uint256"},
        ],
        "name": "swapExactTokensForTokens",
        "outputs": [{"name": "amounts", "type": "uint256[]"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

# ========================================================================
# API CONSTANTS
# ========================================================================

HISTORY_DEFAULT_LIMIT = 50
HISTORY_MAX_LIMIT = 200

# ========================================================================
# JOB CONSTANTS
# ========================================================================

DRAMATIQ_TIME_LIMIT_STANDARD = 300_000  # 5 minutes, in milliseconds
RECONCILE_BATCH_LIMIT = 100  # Pending ledger entries per reconciliation run
RECONCILE_LOCK_TIMEOUT = 300  # Seconds; one reconciliation run at a time
