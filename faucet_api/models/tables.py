from sqlalchemy import BigInteger, Boolean, Column, Integer, String

from faucet_api.database import Base


class ClaimRow(Base):
    __tablename__ = "claims"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_address = Column(String(42), nullable=False, index=True)
    timestamp = Column(BigInteger, nullable=False)
    token_address = Column(String(42), nullable=False)
    amount = Column(String, nullable=False)
    tx_hash = Column(String(66), nullable=False)


class TokenRow(Base):
    __tablename__ = "tokens"

    address = Column(String(42), primary_key=True)
    symbol = Column(String, nullable=False)
    name = Column(String, nullable=False)
    amount = Column(String, nullable=False)
    decimals = Column(Integer, nullable=False, default=18)
    is_active = Column(Boolean, nullable=False, default=True)
    added_at = Column(BigInteger, nullable=False, default=0)
    added_by = Column(String, nullable=False, default="system")


class FaucetStateRow(Base):
    __tablename__ = "faucet_state"

    id = Column(Integer, primary_key=True)
    is_paused = Column(Boolean, nullable=False, default=False)
    reason = Column(String, nullable=False, default="")
    paused_at = Column(BigInteger, nullable=False, default=0)
    paused_by = Column(String, nullable=False, default="")
