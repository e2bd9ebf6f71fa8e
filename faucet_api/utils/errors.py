from typing import Any, Dict, Optional


class FaucetError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error, "message": self.message, "statusCode": self.status_code}
        body.update(self.extra)
        return body


class ValidationError(FaucetError):
    status_code = 400
    error = "Validation Error"


class InvalidAddress(ValidationError):
    error = "Invalid Address"

    def __init__(self, message: str = "Please provide a valid Ethereum address", **extra: Any):
        super().__init__(message, **extra)


class TokenNotSupported(FaucetError):
    status_code = 400
    error = "Invalid Token"

    def __init__(self, message: str = "Token not supported", **extra: Any):
        super().__init__(message, **extra)


class BlacklistedAddress(FaucetError):
    status_code = 400
    error = "Blacklisted Address"

    def __init__(self, message: str = "Address is blacklisted", **extra: Any):
        super().__init__(message, **extra)


class CooldownActive(FaucetError):
    status_code = 429
    error = "Cooldown Active"

    def __init__(self, remaining_seconds: int, message: Optional[str] = None):
        if message is None:
            message = f"Cooldown active. You can claim again in {-(-remaining_seconds // 60)} minutes."
        super().__init__(message, retryAfter=remaining_seconds, remainingTime=remaining_seconds)
        self.remaining_seconds = remaining_seconds


class DailyLimitExceeded(FaucetError):
    status_code = 429
    error = "Daily Limit Exceeded"

    def __init__(self, retry_after: int):
        super().__init__("You have reached the daily claim limit", retryAfter=retry_after)
        self.retry_after = retry_after


class Unauthorized(FaucetError):
    status_code = 401
    error = "Unauthorized"


class Forbidden(FaucetError):
    status_code = 403
    error = "Forbidden"


class FaucetPaused(FaucetError):
    status_code = 503
    error = "Faucet Paused"


class BlockchainTransactionFailed(FaucetError):
    status_code = 400
    error = "Transaction Failed"


class TransactionSubmissionFailed(BlockchainTransactionFailed):
    """The node refused the transaction; nothing was broadcast."""

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or f"Transaction submission failed: {reason}", reason=reason)
        self.reason = reason


class GasEstimationFailed(TransactionSubmissionFailed):
    def __init__(self, reason: str):
        super().__init__(reason, message=f"Gas estimation failed: {reason}")


class TransactionReverted(BlockchainTransactionFailed):
    def __init__(self, tx_hash: str, reason: Optional[str] = None):
        message = f"Transaction {tx_hash} reverted"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, txHash=tx_hash)
        self.tx_hash = tx_hash


class TransactionNotConfirmed(BlockchainTransactionFailed):
    """Submitted, but no receipt arrived in time. The claim may still land."""

    error = "Transaction Not Confirmed"

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"Transaction {tx_hash} not mined within {timeout} seconds", txHash=tx_hash)
        self.tx_hash = tx_hash


class MissingData(ValidationError):
    error = "Missing Data"


class InvalidNonce(ValidationError):
    error = "Invalid Nonce"

    def __init__(self, message: str = "Nonce not found or expired", **extra: Any):
        super().__init__(message, **extra)


class InvalidSignature(ValidationError):
    error = "Invalid Signature"

    def __init__(self, message: str = "Signature verification failed", **extra: Any):
        super().__init__(message, **extra)


class InvalidAmount(ValidationError):
    error = "Invalid Amount"

    def __init__(self, message: str = "Amount must be a positive number", **extra: Any):
        super().__init__(message, **extra)


class TokenNotFound(FaucetError):
    status_code = 404
    error = "Token Not Found"

    def __init__(self, message: str = "Token is not registered in the faucet", **extra: Any):
        super().__init__(message, **extra)


class TokenExists(FaucetError):
    status_code = 409
    error = "Token Exists"

    def __init__(self, message: str = "Token is already registered in the faucet", **extra: Any):
        super().__init__(message, **extra)


class AlreadyPaused(FaucetError):
    status_code = 400
    error = "Already Paused"

    def __init__(self, message: str = "Faucet is already paused", **extra: Any):
        super().__init__(message, **extra)


class NotPaused(FaucetError):
    status_code = 400
    error = "Not Paused"

    def __init__(self, message: str = "Faucet is not currently paused", **extra: Any):
        super().__init__(message, **extra)


class RpcConnectionFailed(FaucetError):
    status_code = 500
    error = "RPC Connection Failed"


class BalanceLookupFailed(FaucetError):
    status_code = 500

    def __init__(self, message: str = "Failed to fetch contract balance", **extra: Any):
        super().__init__(message, **extra)
