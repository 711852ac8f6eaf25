"""Standard ledger operations exposed to plan steps by name."""

from typing import Any, Callable, Dict, Mapping

from execution_plan.validator import parse_amount

from .client import LedgerClient
from .transfer import TransferExecutor

Operation = Callable[[Mapping[str, Any]], Dict[str, object]]


def build_ledger_operations(
    ledger: LedgerClient,
    transfers: TransferExecutor,
    account: str,
) -> Dict[str, Operation]:
    token_address = transfers.token_address

    def get_balance(parameters: Mapping[str, Any]) -> Dict[str, object]:
        token = parameters.get("token_address") or token_address
        wallet = parameters.get("wallet_address") or account
        balance = ledger.get_balance(token, wallet)
        return {
            "balance": balance.amount,
            "balance_raw": balance.raw_amount,
            "decimals": balance.decimals,
            "symbol": balance.symbol,
            "token_address": token,
            "wallet_address": wallet,
        }

    def transfer_token(parameters: Mapping[str, Any]) -> Dict[str, object]:
        receipt = transfers.transfer(parameters.get("to"), parameters.get("amount"))
        return receipt.to_dict()

    def batch_transfer(parameters: Mapping[str, Any]) -> Dict[str, object]:
        receipt = transfers.batch_transfer(
            list(parameters.get("recipients") or ()),
            list(parameters.get("amounts") or ()),
        )
        result = receipt.to_dict()
        result["tx_hash"] = receipt.tx_hashes[-1]
        result["amount"] = receipt.total_amount
        return result

    def estimate_transfer_fee(parameters: Mapping[str, Any]) -> Dict[str, object]:
        amount = parse_amount(parameters.get("amount"))
        estimate = ledger.estimate_fee(token_address, parameters.get("to"), amount)
        return {
            "gas_limit": estimate.gas_limit,
            "gas_price_wei": estimate.gas_price_wei,
            "total_cost_wei": estimate.total_cost_wei,
        }

    def is_contract_address(parameters: Mapping[str, Any]) -> Dict[str, object]:
        address = parameters.get("address")
        return {"address": address, "is_contract": transfers.is_contract(address)}

    def get_next_nonce(parameters: Mapping[str, Any]) -> Dict[str, object]:
        wallet = parameters.get("wallet_address") or account
        block_tag = parameters.get("block_tag") or "pending"
        return {
            "wallet_address": wallet,
            "block_tag": block_tag,
            "nonce": ledger.get_next_sequence_number(wallet, block_tag),
        }

    return {
        "getBalance": get_balance,
        "transferToken": transfer_token,
        "batchTransfer": batch_transfer,
        "estimateTransferFee": estimate_transfer_fee,
        "isContractAddress": is_contract_address,
        "getNextNonce": get_next_nonce,
    }
