from typing import Optional, TypedDict

NETWORK_TO_ID = {
    "mantle-sepolia": 5003,
    "mantle": 5000,
    "base-sepolia": 84532,
    "base": 8453,
}

DEFAULT_RPC_URLS = {
    "mantle-sepolia": "https://rpc.sepolia.mantle.xyz",
    "mantle": "https://rpc.mantle.xyz",
    "base-sepolia": "https://sepolia.base.org",
    "base": "https://mainnet.base.org",
}


def get_chain_id(network: str) -> int:
    """Get the chain ID for a given network
    Supports string encoded chain IDs and human readable networks
    """
    try:
        return int(network)
    except ValueError:
        pass
    if network not in NETWORK_TO_ID:
        raise ValueError(f"Unsupported network: {network}")
    return NETWORK_TO_ID[network]


def get_default_rpc_url(network: str) -> str:
    if network not in DEFAULT_RPC_URLS:
        raise ValueError(f"No default RPC URL for network: {network}")
    return DEFAULT_RPC_URLS[network]


class KnownToken(TypedDict):
    human_name: str
    address: str
    name: str
    decimals: int
    version: str


KNOWN_TOKENS: dict[int, list[KnownToken]] = {
    5003: [
        {
            "human_name": "usdc",
            "address": "0x53b8e9e6513A2e7A4d23F8F9BFe3F5985C9788e4",
            "name": "USDC",  # needs to be exactly what is returned by name() on contract
            "decimals": 6,
            "version": "1",
        }
    ],
    84532: [
        {
            "human_name": "usdc",
            "address": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
            "name": "USDC",
            "decimals": 6,
            "version": "2",
        }
    ],
    8453: [
        {
            "human_name": "usdc",
            "address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            "name": "USD Coin",
            "decimals": 6,
            "version": "2",
        }
    ],
}


def find_known_token(chain_id: int, address: str) -> Optional[KnownToken]:
    """Look up a token by chain and address (case-insensitive)."""
    for token in KNOWN_TOKENS.get(chain_id, []):
        if token["address"].lower() == address.lower():
            return token
    return None


def get_token_name(chain_id: int, address: str) -> str:
    """Get the token name for a given chain and address"""
    token = find_known_token(chain_id, address)
    if token is None:
        raise ValueError(f"Token not found for chain {chain_id} and address {address}")
    return token["name"]


def get_token_version(chain_id: int, address: str) -> str:
    """Get the token version for a given chain and address"""
    token = find_known_token(chain_id, address)
    if token is None:
        raise ValueError(f"Token not found for chain {chain_id} and address {address}")
    return token["version"]


def get_default_token_address(chain_id: int, token_type: str = "usdc") -> str:
    """Get the default token address for a given chain and token type"""
    for token in KNOWN_TOKENS.get(chain_id, []):
        if token["human_name"] == token_type:
            return token["address"]
    raise ValueError(f"Token type '{token_type}' not found for chain {chain_id}")
