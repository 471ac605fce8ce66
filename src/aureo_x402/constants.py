"""Protocol constants - header names, ABIs, error codes."""

# Protocol revision carried in every requirement and payment
X402_VERSION = "1"

# HTTP headers
X_PAYMENT_HEADER = "X-PAYMENT"
X_PAYMENT_REQUIRED_HEADER = "X-PAYMENT-REQUIRED"
X_PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"

# EIP-712 primary type signed by the payer
PRIMARY_TYPE = "ReceiveWithAuthorization"

# Transaction status
TX_STATUS_SUCCESS = 1
TX_STATUS_FAILED = 0

# Default requirement lifetime (5 minutes)
DEFAULT_VALIDITY_SECONDS = 300

# Retry policy for transient RPC failures
DEFAULT_RPC_MAX_ATTEMPTS = 3
DEFAULT_RPC_BACKOFF_SECONDS = 0.5
DEFAULT_RECEIPT_TIMEOUT_SECONDS = 120

# USDC has 6 decimals
DEFAULT_DECIMALS = 6

# Error codes
ERR_NO_PAYMENT = "no_payment"
ERR_INVALID_FORMAT = "invalid_format"
ERR_INSUFFICIENT_PAYMENT = "insufficient_payment"
ERR_INVALID_PAYEE = "invalid_payee"
ERR_PAYMENT_EXPIRED = "payment_expired"
ERR_INVALID_SIGNATURE = "invalid_signature"
ERR_NONCE_ALREADY_USED = "nonce_already_used"
ERR_INSUFFICIENT_BALANCE = "insufficient_balance"
ERR_PAYMENT_EXECUTION_FAILED = "payment_execution_failed"
ERR_CHAIN_UNAVAILABLE = "chain_unavailable"
ERR_SIGNER_UNAVAILABLE = "signer_unavailable"
ERR_REQUIREMENT_EXPIRED = "requirement_expired_at_signing"
ERR_SIGNING_FAILED = "signing_failed"
ERR_PAYMENT_DECLINED = "payment_declined_by_user"
ERR_PAYMENT_AMOUNT_EXCEEDED = "payment_amount_exceeded"
ERR_PROTOCOL_VIOLATION = "protocol_violation"
ERR_TRANSPORT_ERROR = "transport_error"

# A fresh challenge and signature may succeed where these failed
RETRYABLE_ERRORS = frozenset(
    {
        ERR_PAYMENT_EXPIRED,
        ERR_NONCE_ALREADY_USED,
        ERR_INSUFFICIENT_BALANCE,
        ERR_PAYMENT_EXECUTION_FAILED,
        ERR_CHAIN_UNAVAILABLE,
        ERR_REQUIREMENT_EXPIRED,
    }
)

# Retrying cannot fix these
CONFIGURATION_ERRORS = frozenset(
    {
        ERR_INVALID_PAYEE,
        ERR_PROTOCOL_VIOLATION,
        ERR_INVALID_SIGNATURE,
    }
)

# Substrings of revert reasons raised by EIP-3009 tokens on authorization reuse
NONCE_REUSE_REVERT_MARKERS = (
    "authorization is used",
    "used or canceled",
    "nonce",
)

# EIP-712 type definitions
EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

RECEIVE_WITH_AUTHORIZATION_TYPE = [
    {"name": "from", "type": "address"},
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "validAfter", "type": "uint256"},
    {"name": "validBefore", "type": "uint256"},
    {"name": "nonce", "type": "bytes32"},
]

# EIP-3009 ABIs
RECEIVE_WITH_AUTHORIZATION_ABI = [
    {
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
            {"name": "validAfter", "type": "uint256"},
            {"name": "validBefore", "type": "uint256"},
            {"name": "nonce", "type": "bytes32"},
            {"name": "v", "type": "uint8"},
            {"name": "r", "type": "bytes32"},
            {"name": "s", "type": "bytes32"},
        ],
        "name": "receiveWithAuthorization",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    }
]

AUTHORIZATION_STATE_ABI = [
    {
        "inputs": [
            {"name": "authorizer", "type": "address"},
            {"name": "nonce", "type": "bytes32"},
        ],
        "name": "authorizationState",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    }
]

BALANCE_OF_ABI = [
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    }
]

TOKEN_METADATA_ABI = [
    {
        "inputs": [],
        "name": "name",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "version",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
]

EIP3009_TOKEN_ABI = (
    RECEIVE_WITH_AUTHORIZATION_ABI
    + AUTHORIZATION_STATE_ABI
    + BALANCE_OF_ABI
    + TOKEN_METADATA_ABI
)
