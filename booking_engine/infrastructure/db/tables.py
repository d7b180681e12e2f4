from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

listings = Table(
    "listings",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("owner_id", String(64), nullable=False, index=True),
    Column("title", String(200), nullable=False, default=""),
    Column("daily_rate", Integer, nullable=False),
    Column("weekly_rate", Integer),
    Column("monthly_rate", Integer),
    Column("security_deposit", Integer, nullable=False, default=0),
    Column("shipping_fee", Integer, nullable=False, default=0),
    Column("instant_book", Boolean, nullable=False, default=False),
    Column("currency_code", String(3), nullable=False),
    Column("created_at", DateTime),
    # Se incrementa en cada escritura del calendario para serializar escritores.
    Column("booking_version", Integer, nullable=False, default=0),
)

bookings = Table(
    "bookings",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("listing_id", String(36), nullable=False),
    Column("renter_id", String(64), nullable=False, index=True),
    Column("owner_id", String(64), nullable=False, index=True),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("status", String(16), nullable=False),
    Column("delivery_method", String(16), nullable=False),
    Column("insurance_tier", String(16), nullable=False),
    Column("currency_code", String(3), nullable=False),
    Column("daily_rate", Integer, nullable=False),
    Column("days", Integer, nullable=False),
    Column("subtotal", Integer, nullable=False),
    Column("service_fee", Integer, nullable=False),
    Column("delivery_fee", Integer, nullable=False),
    Column("insurance_fee", Integer, nullable=False),
    Column("total_amount", Integer, nullable=False),
    Column("security_deposit", Integer, nullable=False),
    Column("before_check_completed", Boolean, nullable=False, default=False),
    Column("after_check_completed", Boolean, nullable=False, default=False),
    Column("cancellation_reason", String(1000)),
    Column("rejection_reason", String(1000)),
    Column("needs_reconciliation", Boolean, nullable=False, default=False),
    Column("reconciliation_reason", String(500)),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
    Column("confirmed_at", DateTime),
    Column("checked_out_at", DateTime),
    Column("completed_at", DateTime),
    Column("cancelled_at", DateTime),
    Column("rejected_at", DateTime),
    Column("disputed_at", DateTime),
    Column("lock_version", Integer, nullable=False, default=0),
    Index("ix_bookings_listing_dates", "listing_id", "start_date", "end_date"),
)

booking_transitions = Table(
    "booking_transitions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("booking_id", String(36), nullable=False, index=True),
    Column("from_status", String(16)),
    Column("to_status", String(16), nullable=False),
    Column("actor_id", String(64), nullable=False),
    Column("occurred_at", DateTime, nullable=False),
    Column("note", String(500)),
)

payout_accounts = Table(
    "payout_accounts",
    metadata,
    Column("owner_id", String(64), primary_key=True),
    Column("processor_account_id", String(64), nullable=False, unique=True),
    Column("charges_enabled", Boolean, nullable=False, default=False),
    Column("payouts_enabled", Boolean, nullable=False, default=False),
    Column("updated_at", DateTime),
)

payer_profiles = Table(
    "payer_profiles",
    metadata,
    Column("renter_id", String(64), primary_key=True),
    Column("processor_customer_id", String(64), nullable=False),
    Column("created_at", DateTime),
)

payment_intents = Table(
    "payment_intents",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("booking_id", String(36), nullable=False, index=True),
    Column("processor_intent_id", String(64), nullable=False, unique=True),
    Column("amount", Integer, nullable=False),
    Column("currency_code", String(3), nullable=False),
    Column("platform_fee", Integer, nullable=False),
    Column("processor_fee", Integer, nullable=False),
    Column("owner_payout", Integer, nullable=False),
    Column("destination_account_id", String(64), nullable=False),
    Column("status", String(32), nullable=False),
    Column("client_secret", String(255)),
    Column("last_event_id", String(64)),
    Column("failure_message", String(500)),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
)

transaction_records = Table(
    "transaction_records",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("booking_id", String(36), nullable=False, unique=True),
    Column("payment_intent_id", String(36), nullable=False),
    Column("base_amount", Integer, nullable=False),
    Column("platform_fee", Integer, nullable=False),
    Column("processing_fee", Integer, nullable=False),
    Column("total_amount", Integer, nullable=False),
    Column("owner_payout", Integer, nullable=False),
    Column("payer_id", String(64), nullable=False),
    Column("payee_id", String(64), nullable=False),
    Column("currency_code", String(3), nullable=False),
    Column("transaction_date", DateTime, nullable=False),
    Column("tax_year", Integer, nullable=False),
)

refund_adjustments = Table(
    "refund_adjustments",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("transaction_record_id", String(36), nullable=False),
    Column("booking_id", String(36), nullable=False, index=True),
    Column("processor_refund_id", String(64), nullable=False),
    Column("amount", Integer, nullable=False),
    Column("reason", String(500), nullable=False),
    Column("adjustment_type", String(16), nullable=False, default="refund"),
    Column("affects_tax_reporting", Boolean, nullable=False, default=True),
    Column("tax_year", Integer, nullable=False),
    Column("created_at", DateTime, nullable=False),
)

disputes = Table(
    "disputes",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("booking_id", String(36), nullable=False, index=True),
    Column("complainant_id", String(64), nullable=False),
    Column("respondent_id", String(64), nullable=False),
    Column("dispute_type", String(32), nullable=False),
    Column("description", Text, nullable=False),
    Column("evidence_urls", JSON, nullable=False),
    Column("status", String(16), nullable=False),
    Column("escalation_note", String(2000)),
    Column("resolution_action", String(100)),
    Column("resolved_by", String(64)),
    Column("resolved_at", DateTime),
    Column("compensation_amount", Integer),
    Column("compensation_recipient", String(16)),
    Column("processor_reference", String(64)),
    Column("resolution_notes", String(2000)),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
)

dispute_messages = Table(
    "dispute_messages",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(36), nullable=False, unique=True),
    Column("dispute_id", String(36), nullable=False, index=True),
    Column("sender_id", String(64), nullable=False),
    Column("body", Text, nullable=False),
    Column("is_admin_message", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False),
)

processed_webhook_events = Table(
    "processed_webhook_events",
    metadata,
    Column("event_id", String(128), primary_key=True),
    Column("event_type", String(64), nullable=False),
    Column("received_at", DateTime, nullable=False),
)

idempotency_keys = Table(
    "idempotency_keys",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("scope", String(128), nullable=False),
    Column("idem_key", String(128), nullable=False),
    Column("request_hash", String(64), nullable=False),
    Column("response_json", JSON),
    Column("http_status", Integer),
    Column("reference_id", String(36)),
    UniqueConstraint("scope", "idem_key", name="uq_idempotency_scope_key"),
)

outbox_events = Table(
    "outbox_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("event_type", String(64), nullable=False),
    Column("aggregate_type", String(32), nullable=False),
    Column("aggregate_id", String(36), nullable=False),
    Column("payload", JSON, nullable=False),
    Column("status", String(16), nullable=False, default="NEW"),
    Column("attempts", Integer, nullable=False, default=0),
    Column("next_attempt_at", DateTime),
    Column("locked_by", String(64)),
    Column("lock_expires_at", DateTime),
    Column("error_message", String(500)),
    Column("created_at", DateTime),
)
