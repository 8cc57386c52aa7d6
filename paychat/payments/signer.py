"""
Signer capability for x402 payments

The payment core only needs something that turns an EIP-712 typed-data
document into a signature. Wallet integrations implement the Signer protocol;
LocalAccountSigner covers the common case of a locally held private key.
"""

from typing import Any, Dict, Protocol, runtime_checkable

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3
import structlog

logger = structlog.get_logger()


@runtime_checkable
class Signer(Protocol):
    """Produces an opaque hex signature over EIP-712 typed data"""

    async def sign_typed_data(self, typed_data: Dict[str, Any]) -> str:
        ...


class LocalAccountSigner:
    """
    Signer backed by an eth-account key.

    Typed-data messages arrive with x402 string encodings (decimal strings for
    uint256, lowercase or checksummed addresses); they are normalized to the
    types eth-account expects before encoding.
    """

    def __init__(self, private_key: str):
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        self.account = Account.from_key(private_key)
        self.address = self.account.address

    async def sign_typed_data(self, typed_data: Dict[str, Any]) -> str:
        full_message = self._normalize(typed_data)
        encoded = encode_typed_data(full_message=full_message)
        signed = self.account.sign_message(encoded)

        sig_hex = signed.signature.hex()
        if not sig_hex.startswith("0x"):
            sig_hex = "0x" + sig_hex

        logger.debug(
            "typed_data_signed",
            signer=self.address,
            primary_type=typed_data.get("primaryType"),
        )
        return sig_hex

    @staticmethod
    def _normalize(typed_data: Dict[str, Any]) -> Dict[str, Any]:
        """Coerce string-encoded fields to the EIP-712 field types"""
        types = typed_data["types"]
        primary_type = typed_data["primaryType"]

        def coerce(fields, values):
            result = dict(values)
            for field in fields:
                name, type_ = field["name"], field["type"]
                if name not in result:
                    continue
                value = result[name]
                if type_.startswith(("uint", "int")) and isinstance(value, str):
                    result[name] = int(value, 16) if value.startswith("0x") else int(value)
                elif type_ == "address" and isinstance(value, str):
                    result[name] = Web3.to_checksum_address(value)
                elif type_.startswith("bytes") and isinstance(value, str):
                    result[name] = bytes.fromhex(value[2:] if value.startswith("0x") else value)
            return result

        normalized = dict(typed_data)
        if "EIP712Domain" in types:
            normalized["domain"] = coerce(types["EIP712Domain"], typed_data["domain"])
        normalized["message"] = coerce(types[primary_type], typed_data["message"])
        return normalized
