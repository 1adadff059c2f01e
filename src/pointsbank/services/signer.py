"""
Wallet identities and the transaction signer.

The signer turns a transfer descriptor plus the sender's private key into a
signed transaction reference (its hash). Nothing is broadcast; the hash is
what the ledger records. Signing is CPU-bound, so it runs in a worker thread
and is bounded by a timeout; expiry is reported as a signer failure.
"""

import asyncio
from dataclasses import dataclass

from eth_account import Account

from pointsbank import config
from pointsbank.logging_config import get_logger

logger = get_logger("pointsbank.signer")


class SignerError(Exception):
    """Signing failed or did not finish in time."""


@dataclass(frozen=True)
class WalletIdentity:
    address: str
    private_key: str


@dataclass(frozen=True)
class TransferDescriptor:
    from_address: str
    to_address: str
    value: int
    gas: int
    nonce: int = 0


@dataclass(frozen=True)
class SignedTransfer:
    tx_hash: str
    raw_transaction: str


class EthAccountSigner:
    """Offline signer backed by eth-account."""

    def __init__(self, chain_id: int = None, gas_price: int = None):
        self.chain_id = config.SIGNER_CHAIN_ID if chain_id is None else chain_id
        self.gas_price = config.SIGNER_GAS_PRICE if gas_price is None else gas_price

    def create_wallet(self) -> WalletIdentity:
        acct = Account.create()
        return WalletIdentity(address=acct.address, private_key="0x" + bytes(acct.key).hex())

    def _sign(self, descriptor: TransferDescriptor, private_key: str) -> SignedTransfer:
        tx = {
            "from": descriptor.from_address,
            "to": descriptor.to_address,
            "value": descriptor.value,
            "gas": descriptor.gas,
            "gasPrice": self.gas_price,
            "nonce": descriptor.nonce,
            "chainId": self.chain_id,
        }
        # eth-account rejects a key whose address differs from "from"
        signed = Account.sign_transaction(tx, private_key)
        return SignedTransfer(
            tx_hash="0x" + bytes(signed.hash).hex(),
            raw_transaction="0x" + bytes(signed.raw_transaction).hex(),
        )

    async def sign(self, descriptor: TransferDescriptor, private_key: str) -> SignedTransfer:
        try:
            return await asyncio.to_thread(self._sign, descriptor, private_key)
        except Exception as e:
            # keep the key out of the message: eth-account errors can echo inputs
            logger.warning(
                "Signing failed from=%s to=%s value=%s: %s",
                descriptor.from_address,
                descriptor.to_address,
                descriptor.value,
                type(e).__name__,
            )
            raise SignerError("Failed to sign transaction") from e


async def sign_with_timeout(signer, descriptor: TransferDescriptor, private_key: str, timeout: float) -> SignedTransfer:
    try:
        return await asyncio.wait_for(signer.sign(descriptor, private_key), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning("Signer timed out after %ss from=%s", timeout, descriptor.from_address)
        raise SignerError("Signing timed out") from e
