"""
Chain configurations for x402 exact-scheme payments

Maps x402 v1 network names to the chain id and USDC EIP-712 domain name used
when the server does not override them through `extra`.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NetworkConfig:
    """Signing domain defaults for a network."""
    chain_id: int
    usdc_name: str


# Supported networks
NETWORKS = {
    "base-sepolia": NetworkConfig(chain_id=84532, usdc_name="USDC"),
    "base": NetworkConfig(chain_id=8453, usdc_name="USD Coin"),
    "avalanche-fuji": NetworkConfig(chain_id=43113, usdc_name="USD Coin"),
    "avalanche": NetworkConfig(chain_id=43114, usdc_name="USD Coin"),
    "iotex": NetworkConfig(chain_id=4689, usdc_name="Bridged USDC"),
    "sei": NetworkConfig(chain_id=1329, usdc_name="USDC"),
    "sei-testnet": NetworkConfig(chain_id=1328, usdc_name="USDC"),
    "polygon": NetworkConfig(chain_id=137, usdc_name="USD Coin"),
    "polygon-amoy": NetworkConfig(chain_id=80002, usdc_name="USDC"),
}

# USDC EIP-712 domain version unless the offer says otherwise
DEFAULT_USDC_VERSION = "2"


def get_network(name: str) -> Optional[NetworkConfig]:
    """Get network config by x402 network name."""
    return NETWORKS.get(name)
