"""
AuditRegistry transaction preparer: encode recordAudit(...) call data for the wallet client.

- Builds the call from the embedded registry ABI (single non-payable function).
- Output is data only: nothing is signed or sent, no nonce or timestamp is embedded,
  so identical inputs always give byte-identical call data.
Config: AUDIT_REGISTRY_ADDRESS, CHAIN_NETWORK.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from eth_abi import encode
from eth_utils import is_address, is_hex_address, keccak, to_checksum_address

from backend_guard.analysis_engine.scorer import MAX_SCORE, MIN_SCORE
from backend_guard.core.exceptions import ValidationError, ValidationKind
from backend_guard.guard_logging import get_logger

logger = get_logger(__name__)

RECORD_AUDIT_SIGNATURE = "recordAudit(address,uint256,string)"
# Solidity: selector = first 4 bytes of keccak256(signature)
RECORD_AUDIT_SELECTOR = keccak(text=RECORD_AUDIT_SIGNATURE)[:4]

AUDIT_REGISTRY_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "recordAudit",
        "inputs": [
            {"name": "_contractAddress", "type": "address", "internalType": "address"},
            {"name": "_riskScore", "type": "uint256", "internalType": "uint256"},
            {"name": "_reportHash", "type": "string", "internalType": "string"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
]

MISSING_PARAMS_MESSAGE = "Missing required parameters"
SCORE_RANGE_MESSAGE = "Risk score must be between 0 and 100"


@dataclass(frozen=True)
class AuditTransactionIntent:
    """Unsigned recordAudit call; ownership passes to the wallet client."""

    target_contract_address: str
    encoded_call_data: str
    native_value: int
    source_contract_address: str
    risk_score: int
    report_hash: str
    chain_id: int

    def to_transaction(self) -> dict[str, Any]:
        """Wallet-facing transaction request: {to, data, value, chainId}."""
        return {
            "to": self.target_contract_address,
            "data": self.encoded_call_data,
            "value": str(self.native_value),
            "chainId": self.chain_id,
        }


def _input_types(abi: list[dict[str, Any]], name: str) -> list[str]:
    fn = next((f for f in abi if f.get("type") == "function" and f.get("name") == name), None)
    if not fn:
        raise ValueError(f"ABI missing {name} function")
    return [i["type"] for i in fn["inputs"]]


RECORD_AUDIT_INPUT_TYPES = _input_types(AUDIT_REGISTRY_ABI, "recordAudit")


def validate_score(score: Any) -> int:
    """Score must be an integer in [0, 100] (bounds inclusive). Integral floats are accepted."""
    if score is None:
        raise ValidationError(ValidationKind.MISSING_FIELD, MISSING_PARAMS_MESSAGE)
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValidationError(ValidationKind.SCORE_OUT_OF_RANGE, "Risk score must be a number")
    if not (MIN_SCORE <= score <= MAX_SCORE):
        raise ValidationError(ValidationKind.SCORE_OUT_OF_RANGE, SCORE_RANGE_MESSAGE)
    if isinstance(score, float) and not score.is_integer():
        raise ValidationError(ValidationKind.SCORE_OUT_OF_RANGE, "Risk score must be an integer")
    return int(score)


def encode_record_audit(contract_address: str, risk_score: int, report_hash: str) -> str:
    """0x-prefixed call data: selector + ABI-encoded (address, uint256, string)."""
    args = encode(RECORD_AUDIT_INPUT_TYPES, [to_checksum_address(contract_address), risk_score, report_hash])
    return "0x" + (RECORD_AUDIT_SELECTOR + args).hex()


class TransactionPreparer:
    """Prepares recordAudit intents against one configured registry on one chain."""

    def __init__(self, registry_address: str, chain_id: int) -> None:
        if not isinstance(registry_address, str) or not is_hex_address(registry_address):
            raise ValueError(f"Invalid registry address: {registry_address!r}")
        self._registry_address = to_checksum_address(registry_address)
        self._chain_id = int(chain_id)

    @property
    def registry_address(self) -> str:
        return self._registry_address

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def prepare(self, source_contract_address: Any, score: Any, report_hash: Any) -> AuditTransactionIntent:
        """
        Validate inputs and encode recordAudit(contractAddress, riskScore, reportHash).

        Check order: missing fields, score range, address format.
        """
        address = source_contract_address.strip() if isinstance(source_contract_address, str) else ""
        rhash = report_hash.strip() if isinstance(report_hash, str) else ""
        if not address or not rhash or score is None:
            raise ValidationError(ValidationKind.MISSING_FIELD, MISSING_PARAMS_MESSAGE)
        risk_score = validate_score(score)
        if not is_address(address):
            raise ValidationError(ValidationKind.MALFORMED_FIELD, "Invalid contract address")

        data = encode_record_audit(address, risk_score, rhash)
        intent = AuditTransactionIntent(
            target_contract_address=self._registry_address,
            encoded_call_data=data,
            native_value=0,
            source_contract_address=to_checksum_address(address),
            risk_score=risk_score,
            report_hash=rhash,
            chain_id=self._chain_id,
        )
        logger.info(
            "audit_tx_prepared",
            contract=intent.source_contract_address,
            risk_score=risk_score,
            registry=self._registry_address,
            chain_id=self._chain_id,
            data_len=len(data),
        )
        return intent
