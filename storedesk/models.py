import uuid
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _created_at():
    # Python-side default keeps sub-second ordering on backends whose now() is per-second
    return Column(DateTime, default=datetime.utcnow, server_default=func.now(), nullable=False, index=True)


def _updated_at():
    return Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, server_default=func.now(), nullable=False)


# =============================================================================
# Accounts and stores
# =============================================================================

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    notification_settings = Column(JSON, default=dict)
    created_at = _created_at()

    stores = relationship("Store", back_populates="owner")


class Store(Base):
    __tablename__ = "stores"

    id = Column(String(36), primary_key=True, default=_uuid)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    business_type = Column(String, nullable=True)
    chatbot_settings = Column(JSON, default=dict)  # welcome_message, show_prices, escalation_*, ...
    ai_auto_reply = Column(Boolean, nullable=False, default=True)
    busy_mode = Column(Boolean, nullable=False, default=False)
    busy_message = Column(Text, nullable=True)
    estimated_wait_minutes = Column(Integer, nullable=True)
    shipping_settings = Column(JSON, default=dict)  # {"zones": [...], "free_shipping_enabled", "free_shipping_minimum"}
    webhook_url = Column(String, nullable=True)
    created_at = _created_at()

    owner = relationship("User", back_populates="stores")


class Staff(Base):
    __tablename__ = "staff"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    role = Column(String, nullable=True)
    created_at = _created_at()


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    channel = Column(String, nullable=True)  # web, messenger, instagram, whatsapp
    messenger_id = Column(String, nullable=True, index=True)
    instagram_id = Column(String, nullable=True, index=True)
    whatsapp_id = Column(String, nullable=True, index=True)
    created_at = _created_at()


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    body = Column(Text, nullable=True)
    data = Column(JSON, default=dict)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = _created_at()


# =============================================================================
# Catalog and orders
# =============================================================================

class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True, index=True)
    base_price = Column(Float, nullable=False, default=0.0)
    status = Column(String, nullable=False, default="active", index=True)  # active/draft/archived
    search_aliases = Column(Text, nullable=True)  # space/comma separated alternate names
    sales_script = Column(Text, nullable=True)
    faqs = Column(JSON, nullable=True)  # {"size_fit": "...", "material": "..."}
    images = Column(JSON, default=list)
    created_at = _created_at()

    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(String(36), primary_key=True, default=_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    size = Column(String, nullable=True)
    color = Column(String, nullable=True)
    price = Column(Float, nullable=True)
    stock_quantity = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="variants")


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True, index=True)
    pos_session_id = Column(String(36), ForeignKey("pos_sessions.id"), nullable=True)
    order_number = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="pending", index=True)
    payment_status = Column(String, nullable=False, default="pending")
    payment_method = Column(String, nullable=True)
    order_type = Column(String, nullable=False, default="delivery")
    subtotal = Column(Float, nullable=False, default=0.0)
    shipping_amount = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)
    shipping_address = Column(Text, nullable=True)
    customer_phone = Column(String, nullable=True)
    tracking_number = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=True)
    variant_id = Column(String(36), ForeignKey("product_variants.id"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0.0)
    variant_label = Column(String, nullable=True)

    order = relationship("Order", back_populates="items")


# =============================================================================
# Conversations
# =============================================================================

class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True, index=True)
    status = Column(String, nullable=False, default="active", index=True)  # active/pending/escalated/closed
    channel = Column(String, nullable=True)
    unread_count = Column(Integer, nullable=False, default=0)
    escalation_score = Column(Integer, nullable=False, default=0)
    escalation_level = Column(String, nullable=False, default="low")
    escalated_at = Column(DateTime, nullable=True)
    extra_metadata = Column("metadata", JSON, default=dict)  # conversation_state, flow_state
    created_at = _created_at()
    updated_at = _updated_at()

    messages = relationship("Message", back_populates="conversation", cascade="all, delete-orphan")


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    conversation_id = Column(String(36), ForeignKey("conversations.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_from_customer = Column(Boolean, nullable=False, default=True)
    is_ai_response = Column(Boolean, nullable=False, default=False)
    extra_metadata = Column("metadata", JSON, default=dict)
    created_at = _created_at()

    conversation = relationship("Conversation", back_populates="messages")


# =============================================================================
# Flows, compensation and vouchers
# =============================================================================

class Flow(Base):
    __tablename__ = "flows"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="draft", index=True)  # draft/active/paused
    trigger_type = Column(String, nullable=False)
    trigger_config = Column(JSON, default=dict)
    nodes = Column(JSON, default=list)
    edges = Column(JSON, default=list)
    priority = Column(Integer, nullable=False, default=0)
    times_triggered = Column(Integer, nullable=False, default=0)
    times_completed = Column(Integer, nullable=False, default=0)
    last_triggered_at = Column(DateTime, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()


class FlowExecutionLog(Base):
    __tablename__ = "flow_execution_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    flow_id = Column(String(36), ForeignKey("flows.id", ondelete="SET NULL"), nullable=True, index=True)
    conversation_id = Column(String(36), ForeignKey("conversations.id"), nullable=True)
    status = Column(String, nullable=False, default="running")  # running/completed
    variables_collected = Column(JSON, default=dict)
    exit_node_id = Column(String, nullable=True)
    started_at = _created_at()
    completed_at = Column(DateTime, nullable=True)


class CompensationPolicy(Base):
    __tablename__ = "compensation_policies"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    complaint_category = Column(String, nullable=False)
    compensation_type = Column(String, nullable=False)  # percent_discount/fixed_discount/free_shipping/free_item
    compensation_value = Column(Float, nullable=False, default=0.0)
    max_discount_amount = Column(Float, nullable=True)
    valid_days = Column(Integer, nullable=False, default=30)
    auto_approve = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = _created_at()


class Voucher(Base):
    __tablename__ = "vouchers"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True, index=True)
    policy_id = Column(String(36), ForeignKey("compensation_policies.id"), nullable=True)
    conversation_id = Column(String(36), ForeignKey("conversations.id"), nullable=True)
    voucher_code = Column(String, nullable=False, unique=True)
    compensation_type = Column(String, nullable=False)
    compensation_value = Column(Float, nullable=False, default=0.0)
    max_discount_amount = Column(Float, nullable=True)
    complaint_category = Column(String, nullable=True)
    complaint_summary = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="pending_approval", index=True)
    valid_until = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    redeemed_at = Column(DateTime, nullable=True)
    created_at = _created_at()


# =============================================================================
# Real estate
# =============================================================================

class Deal(Base):
    __tablename__ = "deals"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    deal_number = Column(String, nullable=False)
    property_id = Column(String(36), ForeignKey("products.id"), nullable=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    agent_id = Column(String(36), ForeignKey("staff.id"), nullable=True, index=True)
    status = Column(String, nullable=False, default="lead", index=True)
    deal_type = Column(String, nullable=False, default="sale")
    asking_price = Column(Float, nullable=True)
    offer_price = Column(Float, nullable=True)
    final_price = Column(Float, nullable=True)
    commission_rate = Column(Float, nullable=True, default=5.0)
    agent_share_rate = Column(Float, nullable=True, default=50.0)
    commission_amount = Column(Float, nullable=True)
    agent_share_amount = Column(Float, nullable=True)
    company_share_amount = Column(Float, nullable=True)
    viewing_date = Column(DateTime, nullable=True)
    offer_date = Column(DateTime, nullable=True)
    contract_date = Column(DateTime, nullable=True)
    closed_date = Column(DateTime, nullable=True)
    withdrawn_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    extra_metadata = Column("metadata", JSON, default=dict)
    created_at = _created_at()
    updated_at = _updated_at()


# =============================================================================
# Hospitality
# =============================================================================

class Unit(Base):
    __tablename__ = "units"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    unit_number = Column(String, nullable=False)
    unit_type = Column(String, nullable=False, default="standard")
    floor = Column(String, nullable=True)
    max_occupancy = Column(Integer, nullable=True)
    base_rate = Column(Float, nullable=False)
    amenities = Column(JSON, default=list)
    images = Column(JSON, default=list)
    status = Column(String, nullable=False, default="available", index=True)
    created_at = _created_at()
    updated_at = _updated_at()


class HousekeepingTask(Base):
    __tablename__ = "housekeeping_tasks"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    unit_id = Column(String(36), ForeignKey("units.id"), nullable=False, index=True)
    assigned_to = Column(String(36), ForeignKey("staff.id"), nullable=True, index=True)
    task_type = Column(String, nullable=False, default="cleaning")
    priority = Column(String, nullable=False, default="normal")
    status = Column(String, nullable=False, default="pending", index=True)
    scheduled_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()


# =============================================================================
# Billing
# =============================================================================

class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    invoice_number = Column(String, nullable=False, index=True)
    party_type = Column(String, nullable=False)
    party_id = Column(String(36), nullable=True, index=True)
    source_type = Column(String, nullable=False, default="manual")
    source_id = Column(String(36), nullable=True)
    status = Column(String, nullable=False, default="draft", index=True)
    subtotal = Column(Float, nullable=False, default=0.0)
    tax_amount = Column(Float, nullable=False, default=0.0)
    discount_amount = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)
    amount_paid = Column(Float, nullable=False, default=0.0)
    amount_due = Column(Float, nullable=False, default=0.0)
    due_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    extra_metadata = Column("metadata", JSON, default=dict)
    created_at = _created_at()
    updated_at = _updated_at()

    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.sort_order",
    )
    payments = relationship("BillingPayment", back_populates="invoice", cascade="all, delete-orphan")


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    invoice_id = Column(String(36), ForeignKey("invoices.id"), nullable=False, index=True)
    description = Column(String, nullable=False)
    quantity = Column(Float, nullable=False, default=1.0)
    unit_price = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    tax_rate = Column(Float, nullable=False, default=0.0)
    line_total = Column(Float, nullable=False, default=0.0)
    item_type = Column(String, nullable=False, default="custom")
    item_id = Column(String(36), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    invoice = relationship("Invoice", back_populates="items")


class BillingPayment(Base):
    __tablename__ = "billing_payments"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    invoice_id = Column(String(36), ForeignKey("invoices.id"), nullable=True, index=True)
    payment_number = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    method = Column(String, nullable=False)
    status = Column(String, nullable=False, default="completed")
    gateway_ref = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    paid_at = Column(DateTime, default=datetime.utcnow)
    created_at = _created_at()

    invoice = relationship("Invoice", back_populates="payments")


# =============================================================================
# Laundry
# =============================================================================

class Machine(Base):
    __tablename__ = "machines"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    machine_type = Column(String, nullable=False, default="washer")
    status = Column(String, nullable=False, default="available", index=True)
    capacity_kg = Column(Float, nullable=True)
    created_at = _created_at()


class LaundryOrder(Base):
    __tablename__ = "laundry_orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    order_number = Column(String, nullable=False)
    status = Column(String, nullable=False, default="received", index=True)
    total_items = Column(Integer, nullable=False, default=0)
    total_amount = Column(Float, nullable=False, default=0.0)
    paid_amount = Column(Float, nullable=False, default=0.0)
    rush_order = Column(Boolean, nullable=False, default=False)
    pickup_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    items = relationship("LaundryItem", back_populates="order", cascade="all, delete-orphan")


class LaundryItem(Base):
    __tablename__ = "laundry_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("laundry_orders.id"), nullable=False, index=True)
    item_type = Column(String, nullable=False)
    service_type = Column(String, nullable=False, default="wash_fold")
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)

    order = relationship("LaundryOrder", back_populates="items")


# =============================================================================
# Medical
# =============================================================================

class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String, nullable=True)
    blood_type = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    emergency_contact = Column(JSON, nullable=True)
    allergies = Column(JSON, default=list)
    insurance_info = Column(JSON, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()


# =============================================================================
# Construction
# =============================================================================

class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="planning")
    created_at = _created_at()


class Permit(Base):
    __tablename__ = "permits"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    permit_type = Column(String, nullable=False, default="building")
    permit_number = Column(String, nullable=True)
    status = Column(String, nullable=False, default="applied", index=True)
    issued_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)
    cost = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()


# =============================================================================
# Point of sale
# =============================================================================

class PosSession(Base):
    __tablename__ = "pos_sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    opened_by = Column(String(36), ForeignKey("staff.id"), nullable=False)
    register_name = Column(String, nullable=True)
    status = Column(String, nullable=False, default="open", index=True)
    opening_cash = Column(Float, nullable=False, default=0.0)
    closing_cash = Column(Float, nullable=True)
    expected_cash = Column(Float, nullable=True)
    cash_difference = Column(Float, nullable=True)
    total_sales = Column(Float, nullable=False, default=0.0)
    total_transactions = Column(Integer, nullable=False, default=0)
    opened_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    closed_at = Column(DateTime, nullable=True)
    created_at = _created_at()


# =============================================================================
# Education
# =============================================================================

class Program(Base):
    __tablename__ = "programs"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    program_type = Column(String, nullable=False, default="course")
    duration_weeks = Column(Integer, nullable=True)
    price = Column(Float, nullable=True)
    max_students = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = _created_at()
    updated_at = _updated_at()


class CourseSession(Base):
    __tablename__ = "course_sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    program_id = Column(String(36), ForeignKey("programs.id"), nullable=False, index=True)
    title = Column(String, nullable=True)
    scheduled_at = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    location = Column(String, nullable=True)
    status = Column(String, nullable=False, default="scheduled")
    created_at = _created_at()


class Student(Base):
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    guardian_name = Column(String, nullable=True)
    guardian_phone = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    program_id = Column(String(36), ForeignKey("programs.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default="active")  # active/completed/withdrawn/suspended
    enrolled_at = _created_at()


class AttendanceRecord(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("session_id", "student_id", name="uq_attendance_session_student"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    session_id = Column(String(36), ForeignKey("course_sessions.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default="present")
    notes = Column(Text, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()
