import secrets
import threading
import time
from typing import Callable, Dict, Tuple

NONCE_TTL_SECONDS = 5 * 60
SIGN_IN_MESSAGE = "Please sign this message to authenticate with the faucet: {nonce}"


def sign_in_message(nonce: str) -> str:
    return SIGN_IN_MESSAGE.format(nonce=nonce)


class NonceStore:
    """Single-use login nonces, one outstanding per lowercased address."""

    def __init__(self, ttl: int = NONCE_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self.clock = clock
        self._nonces: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def _purge(self, now: float) -> None:
        for address in [a for a, (_, expires) in self._nonces.items() if expires <= now]:
            del self._nonces[address]

    def issue(self, address: str) -> str:
        nonce = secrets.token_hex(32)
        now = self.clock()
        with self._lock:
            self._purge(now)
            self._nonces[address.lower()] = (nonce, now + self.ttl)
        return nonce

    def consume(self, address: str, nonce: str) -> bool:
        """Return True and forget the nonce if it matches and has not expired."""
        now = self.clock()
        with self._lock:
            self._purge(now)
            stored = self._nonces.get(address.lower())
            if stored is None or not secrets.compare_digest(stored[0].encode(), nonce.encode()):
                return False
            del self._nonces[address.lower()]
            return True
