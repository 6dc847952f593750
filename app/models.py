import uuid
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKeyConstraint,
    Index,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()
metadata = Base.metadata

REVIEW_STATUSES = ("pending", "approved", "rejected")


def new_id():
    return str(uuid.uuid4())


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (
        Index("clients_email_unique", "email", unique=True),
        CheckConstraint("pgc_balance >= 0", name="ck_clients_balance_non_negative"),
        {"comment": "Stores information about clients using the Petgas portal."},
    )

    # Same value as the identity provider's subject
    id = mapped_column(String(36), primary_key=True)
    email = mapped_column(String(255), nullable=False)
    full_name = mapped_column(Text)
    solana_wallet = mapped_column(Text)
    bnb_wallet = mapped_column(Text)
    pgc_balance = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Petgas Coin balance for the client.",
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    mitigation_entries: Mapped[List["MitigationEntry"]] = relationship(
        "MitigationEntry",
        uselist=True,
        back_populates="client",
        cascade="all, delete-orphan",
    )
    consumption_entries: Mapped[List["ConsumptionEntry"]] = relationship(
        "ConsumptionEntry",
        uselist=True,
        back_populates="client",
        cascade="all, delete-orphan",
    )
    client_rewards: Mapped[List["ClientReward"]] = relationship(
        "ClientReward",
        uselist=True,
        back_populates="client",
        cascade="all, delete-orphan",
    )


class MitigationEntry(Base):
    __tablename__ = "plastic_mitigation_entries"
    __table_args__ = (
        ForeignKeyConstraint(
            ["client_id"],
            ["clients.id"],
            ondelete="CASCADE",
            name="fk_mitigation_client",
        ),
        CheckConstraint("mitigated_plastic_kg > 0", name="ck_mitigation_kg_positive"),
        Index("ix_mitigation_client_id", "client_id"),
        Index("ix_mitigation_status", "status"),
        {"comment": "Records plastic mitigation activities by clients."},
    )

    id = mapped_column(String(36), primary_key=True, default=new_id)
    client_id = mapped_column(String(36), nullable=False)
    mitigated_plastic_kg = mapped_column(Numeric(12, 2), nullable=False)
    status = mapped_column(
        Enum(*REVIEW_STATUSES, name="review_status"),
        nullable=False,
        default="pending",
        server_default=text("'pending'"),
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    client: Mapped["Client"] = relationship(
        "Client", back_populates="mitigation_entries"
    )
    images: Mapped[List["MitigationImage"]] = relationship(
        "MitigationImage",
        uselist=True,
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="MitigationImage.uploaded_at",
    )
    status_history: Mapped[List["MitigationStatusHistory"]] = relationship(
        "MitigationStatusHistory",
        uselist=True,
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="MitigationStatusHistory.changed_at",
    )


class MitigationImage(Base):
    __tablename__ = "mitigation_activity_images"
    __table_args__ = (
        ForeignKeyConstraint(
            ["entry_id"],
            ["plastic_mitigation_entries.id"],
            ondelete="CASCADE",
            name="fk_image_entry",
        ),
        Index("ix_image_entry_id", "entry_id"),
        {"comment": "Stores URLs of images uploaded for mitigation activities."},
    )

    id = mapped_column(String(36), primary_key=True, default=new_id)
    entry_id = mapped_column(String(36), nullable=False)
    image_url = mapped_column(Text, nullable=False)
    storage_path = mapped_column(Text)
    uploaded_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    entry: Mapped["MitigationEntry"] = relationship(
        "MitigationEntry", back_populates="images"
    )


class MitigationStatusHistory(Base):
    __tablename__ = "mitigation_status_history"
    __table_args__ = (
        ForeignKeyConstraint(
            ["entry_id"],
            ["plastic_mitigation_entries.id"],
            ondelete="CASCADE",
            name="fk_status_history_entry",
        ),
        Index("ix_status_history_entry_id", "entry_id"),
        {"comment": "Append-only trail of review status changes."},
    )

    id = mapped_column(String(36), primary_key=True, default=new_id)
    entry_id = mapped_column(String(36), nullable=False)
    from_status = mapped_column(String(16), nullable=False)
    to_status = mapped_column(String(16), nullable=False)
    changed_by = mapped_column(String(255))
    changed_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    entry: Mapped["MitigationEntry"] = relationship(
        "MitigationEntry", back_populates="status_history"
    )


class ConsumptionEntry(Base):
    __tablename__ = "petgas_consumption_entries"
    __table_args__ = (
        ForeignKeyConstraint(
            ["client_id"],
            ["clients.id"],
            ondelete="CASCADE",
            name="fk_consumption_client",
        ),
        CheckConstraint("liters_consumed > 0", name="ck_consumption_liters_positive"),
        Index("ix_consumption_client_id", "client_id"),
        {"comment": "Records Petgas consumption by clients."},
    )

    id = mapped_column(String(36), primary_key=True, default=new_id)
    client_id = mapped_column(String(36), nullable=False)
    liters_consumed = mapped_column(Numeric(12, 2), nullable=False)
    transaction_date = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    client: Mapped["Client"] = relationship(
        "Client", back_populates="consumption_entries"
    )


class Reward(Base):
    __tablename__ = "rewards"
    __table_args__ = (
        CheckConstraint("pgc_amount > 0", name="ck_rewards_amount_positive"),
        CheckConstraint(
            "criteria_plastic_kg IS NULL OR criteria_plastic_kg > 0",
            name="ck_rewards_plastic_criteria",
        ),
        CheckConstraint(
            "criteria_petgas_liters IS NULL OR criteria_petgas_liters > 0",
            name="ck_rewards_liters_criteria",
        ),
        {"comment": "Defines available rewards and their criteria."},
    )

    id = mapped_column(String(36), primary_key=True, default=new_id)
    name = mapped_column(String(255), nullable=False)
    description = mapped_column(Text)
    pgc_amount = mapped_column(Numeric(14, 2), nullable=False)
    criteria_plastic_kg = mapped_column(Numeric(12, 2))
    criteria_petgas_liters = mapped_column(Numeric(12, 2))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    client_rewards: Mapped[List["ClientReward"]] = relationship(
        "ClientReward", uselist=True, back_populates="reward", passive_deletes="all"
    )


class ClientReward(Base):
    __tablename__ = "client_rewards"
    __table_args__ = (
        ForeignKeyConstraint(
            ["client_id"],
            ["clients.id"],
            ondelete="CASCADE",
            name="fk_client_reward_client",
        ),
        # A reward that has been awarded cannot be deleted
        ForeignKeyConstraint(
            ["reward_id"],
            ["rewards.id"],
            ondelete="RESTRICT",
            name="fk_client_reward_reward",
        ),
        Index("ix_client_rewards_client_id", "client_id"),
        Index("ix_client_rewards_reward_id", "reward_id"),
        {"comment": "Tracks rewards awarded to clients."},
    )

    id = mapped_column(String(36), primary_key=True, default=new_id)
    client_id = mapped_column(String(36), nullable=False)
    reward_id = mapped_column(String(36), nullable=False)
    # Points credited when awarded; revocation subtracts exactly this
    pgc_amount = mapped_column(Numeric(14, 2), nullable=False)
    awarded_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    awarded_by = mapped_column(String(255))
    notes = mapped_column(Text)

    client: Mapped["Client"] = relationship("Client", back_populates="client_rewards")
    reward: Mapped[Optional["Reward"]] = relationship(
        "Reward", back_populates="client_rewards"
    )
