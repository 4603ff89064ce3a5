"""initial schema

Revision ID: 5c2e8f1a9b3d
Revises:
Create Date: 2026-03-02 10:14:52.118406

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c2e8f1a9b3d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id():
    return sa.Column('id', sa.String(length=36), nullable=False)


def _timestamp(name='created_at'):
    return sa.Column(name, sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False)


def _store_fk():
    return sa.Column('store_id', sa.String(length=36), nullable=False)


def _indexes(table, *columns, unique=()):
    for column in columns:
        op.create_index(op.f(f'ix_{table}_{column}'), table, [column], unique=column in unique)


def upgrade() -> None:
    """Upgrade schema."""
    # Check if tables already exist (databases created by init_db)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    # ---------- Accounts and stores ----------
    if 'users' not in existing_tables:
        op.create_table('users',
            _id(),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('name', sa.String(), nullable=True),
            sa.Column('password_hash', sa.String(), nullable=False),
            sa.Column('notification_settings', sa.JSON(), nullable=True),
            _timestamp(),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('users', 'email', 'created_at', unique=('email',))

    if 'stores' not in existing_tables:
        op.create_table('stores',
            _id(),
            sa.Column('owner_id', sa.String(length=36), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('business_type', sa.String(), nullable=True),
            sa.Column('chatbot_settings', sa.JSON(), nullable=True),
            sa.Column('ai_auto_reply', sa.Boolean(), nullable=False),
            sa.Column('busy_mode', sa.Boolean(), nullable=False),
            sa.Column('busy_message', sa.Text(), nullable=True),
            sa.Column('estimated_wait_minutes', sa.Integer(), nullable=True),
            sa.Column('shipping_settings', sa.JSON(), nullable=True),
            sa.Column('webhook_url', sa.String(), nullable=True),
            _timestamp(),
            sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('stores', 'owner_id', 'created_at')

    if 'staff' not in existing_tables:
        op.create_table('staff',
            _id(),
            _store_fk(),
            sa.Column('user_id', sa.String(length=36), nullable=True),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('phone', sa.String(), nullable=True),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('role', sa.String(), nullable=True),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('staff', 'store_id', 'user_id', 'created_at')

    if 'customers' not in existing_tables:
        op.create_table('customers',
            _id(),
            _store_fk(),
            sa.Column('name', sa.String(), nullable=True),
            sa.Column('phone', sa.String(), nullable=True),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('channel', sa.String(), nullable=True),
            sa.Column('messenger_id', sa.String(), nullable=True),
            sa.Column('instagram_id', sa.String(), nullable=True),
            sa.Column('whatsapp_id', sa.String(), nullable=True),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('customers', 'store_id', 'messenger_id', 'instagram_id', 'whatsapp_id', 'created_at')

    if 'notifications' not in existing_tables:
        op.create_table('notifications',
            _id(),
            _store_fk(),
            sa.Column('type', sa.String(), nullable=False),
            sa.Column('title', sa.String(), nullable=False),
            sa.Column('body', sa.Text(), nullable=True),
            sa.Column('data', sa.JSON(), nullable=True),
            sa.Column('is_read', sa.Boolean(), nullable=False),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('notifications', 'store_id', 'created_at')

    # ---------- Catalog and orders ----------
    if 'products' not in existing_tables:
        op.create_table('products',
            _id(),
            _store_fk(),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('category', sa.String(), nullable=True),
            sa.Column('base_price', sa.Float(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('search_aliases', sa.Text(), nullable=True),
            sa.Column('sales_script', sa.Text(), nullable=True),
            sa.Column('faqs', sa.JSON(), nullable=True),
            sa.Column('images', sa.JSON(), nullable=True),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('products', 'store_id', 'category', 'status', 'created_at')

    if 'product_variants' not in existing_tables:
        op.create_table('product_variants',
            _id(),
            sa.Column('product_id', sa.String(length=36), nullable=False),
            sa.Column('size', sa.String(), nullable=True),
            sa.Column('color', sa.String(), nullable=True),
            sa.Column('price', sa.Float(), nullable=True),
            sa.Column('stock_quantity', sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('product_variants', 'product_id')

    if 'pos_sessions' not in existing_tables:
        op.create_table('pos_sessions',
            _id(),
            _store_fk(),
            sa.Column('opened_by', sa.String(length=36), nullable=False),
            sa.Column('register_name', sa.String(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('opening_cash', sa.Float(), nullable=False),
            sa.Column('closing_cash', sa.Float(), nullable=True),
            sa.Column('expected_cash', sa.Float(), nullable=True),
            sa.Column('cash_difference', sa.Float(), nullable=True),
            sa.Column('total_sales', sa.Float(), nullable=False),
            sa.Column('total_transactions', sa.Integer(), nullable=False),
            sa.Column('opened_at', sa.DateTime(), nullable=False),
            sa.Column('closed_at', sa.DateTime(), nullable=True),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['opened_by'], ['staff.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('pos_sessions', 'store_id', 'status', 'created_at')

    if 'orders' not in existing_tables:
        op.create_table('orders',
            _id(),
            _store_fk(),
            sa.Column('customer_id', sa.String(length=36), nullable=True),
            sa.Column('pos_session_id', sa.String(length=36), nullable=True),
            sa.Column('order_number', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('payment_status', sa.String(), nullable=False),
            sa.Column('payment_method', sa.String(), nullable=True),
            sa.Column('order_type', sa.String(), nullable=False),
            sa.Column('subtotal', sa.Float(), nullable=False),
            sa.Column('shipping_amount', sa.Float(), nullable=False),
            sa.Column('total_amount', sa.Float(), nullable=False),
            sa.Column('shipping_address', sa.Text(), nullable=True),
            sa.Column('customer_phone', sa.String(), nullable=True),
            sa.Column('tracking_number', sa.String(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
            sa.ForeignKeyConstraint(['pos_session_id'], ['pos_sessions.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('orders', 'store_id', 'customer_id', 'order_number', 'status', 'created_at')

    if 'order_items' not in existing_tables:
        op.create_table('order_items',
            _id(),
            sa.Column('order_id', sa.String(length=36), nullable=False),
            sa.Column('product_id', sa.String(length=36), nullable=True),
            sa.Column('variant_id', sa.String(length=36), nullable=True),
            sa.Column('quantity', sa.Integer(), nullable=False),
            sa.Column('unit_price', sa.Float(), nullable=False),
            sa.Column('variant_label', sa.String(), nullable=True),
            sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
            sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
            sa.ForeignKeyConstraint(['variant_id'], ['product_variants.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('order_items', 'order_id')

    # ---------- Conversations ----------
    if 'conversations' not in existing_tables:
        op.create_table('conversations',
            _id(),
            _store_fk(),
            sa.Column('customer_id', sa.String(length=36), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('channel', sa.String(), nullable=True),
            sa.Column('unread_count', sa.Integer(), nullable=False),
            sa.Column('escalation_score', sa.Integer(), nullable=False),
            sa.Column('escalation_level', sa.String(), nullable=False),
            sa.Column('escalated_at', sa.DateTime(), nullable=True),
            sa.Column('metadata', sa.JSON(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('conversations', 'store_id', 'customer_id', 'status', 'created_at')

    if 'messages' not in existing_tables:
        op.create_table('messages',
            _id(),
            sa.Column('conversation_id', sa.String(length=36), nullable=False),
            sa.Column('content', sa.Text(), nullable=False),
            sa.Column('is_from_customer', sa.Boolean(), nullable=False),
            sa.Column('is_ai_response', sa.Boolean(), nullable=False),
            sa.Column('metadata', sa.JSON(), nullable=True),
            _timestamp(),
            sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('messages', 'conversation_id', 'created_at')

    # ---------- Flows, compensation and vouchers ----------
    if 'flows' not in existing_tables:
        op.create_table('flows',
            _id(),
            _store_fk(),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('trigger_type', sa.String(), nullable=False),
            sa.Column('trigger_config', sa.JSON(), nullable=True),
            sa.Column('nodes', sa.JSON(), nullable=True),
            sa.Column('edges', sa.JSON(), nullable=True),
            sa.Column('priority', sa.Integer(), nullable=False),
            sa.Column('times_triggered', sa.Integer(), nullable=False),
            sa.Column('times_completed', sa.Integer(), nullable=False),
            sa.Column('last_triggered_at', sa.DateTime(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('flows', 'store_id', 'status', 'created_at')

    if 'flow_execution_logs' not in existing_tables:
        op.create_table('flow_execution_logs',
            _id(),
            _store_fk(),
            sa.Column('flow_id', sa.String(length=36), nullable=True),
            sa.Column('conversation_id', sa.String(length=36), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('variables_collected', sa.JSON(), nullable=True),
            sa.Column('exit_node_id', sa.String(), nullable=True),
            _timestamp('started_at'),
            sa.Column('completed_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['flow_id'], ['flows.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('flow_execution_logs', 'store_id', 'flow_id', 'started_at')

    if 'compensation_policies' not in existing_tables:
        op.create_table('compensation_policies',
            _id(),
            _store_fk(),
            sa.Column('complaint_category', sa.String(), nullable=False),
            sa.Column('compensation_type', sa.String(), nullable=False),
            sa.Column('compensation_value', sa.Float(), nullable=False),
            sa.Column('max_discount_amount', sa.Float(), nullable=True),
            sa.Column('valid_days', sa.Integer(), nullable=False),
            sa.Column('auto_approve', sa.Boolean(), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('compensation_policies', 'store_id', 'created_at')

    if 'vouchers' not in existing_tables:
        op.create_table('vouchers',
            _id(),
            _store_fk(),
            sa.Column('customer_id', sa.String(length=36), nullable=True),
            sa.Column('policy_id', sa.String(length=36), nullable=True),
            sa.Column('conversation_id', sa.String(length=36), nullable=True),
            sa.Column('voucher_code', sa.String(), nullable=False),
            sa.Column('compensation_type', sa.String(), nullable=False),
            sa.Column('compensation_value', sa.Float(), nullable=False),
            sa.Column('max_discount_amount', sa.Float(), nullable=True),
            sa.Column('complaint_category', sa.String(), nullable=True),
            sa.Column('complaint_summary', sa.Text(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('valid_until', sa.DateTime(), nullable=True),
            sa.Column('approved_at', sa.DateTime(), nullable=True),
            sa.Column('redeemed_at', sa.DateTime(), nullable=True),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
            sa.ForeignKeyConstraint(['policy_id'], ['compensation_policies.id'], ),
            sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('voucher_code')
        )
        _indexes('vouchers', 'store_id', 'customer_id', 'status', 'created_at')

    # ---------- Real estate ----------
    if 'deals' not in existing_tables:
        op.create_table('deals',
            _id(),
            _store_fk(),
            sa.Column('deal_number', sa.String(), nullable=False),
            sa.Column('property_id', sa.String(length=36), nullable=True),
            sa.Column('customer_id', sa.String(length=36), nullable=True),
            sa.Column('agent_id', sa.String(length=36), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('deal_type', sa.String(), nullable=False),
            sa.Column('asking_price', sa.Float(), nullable=True),
            sa.Column('offer_price', sa.Float(), nullable=True),
            sa.Column('final_price', sa.Float(), nullable=True),
            sa.Column('commission_rate', sa.Float(), nullable=True),
            sa.Column('agent_share_rate', sa.Float(), nullable=True),
            sa.Column('commission_amount', sa.Float(), nullable=True),
            sa.Column('agent_share_amount', sa.Float(), nullable=True),
            sa.Column('company_share_amount', sa.Float(), nullable=True),
            sa.Column('viewing_date', sa.DateTime(), nullable=True),
            sa.Column('offer_date', sa.DateTime(), nullable=True),
            sa.Column('contract_date', sa.DateTime(), nullable=True),
            sa.Column('closed_date', sa.DateTime(), nullable=True),
            sa.Column('withdrawn_date', sa.DateTime(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('metadata', sa.JSON(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['property_id'], ['products.id'], ),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
            sa.ForeignKeyConstraint(['agent_id'], ['staff.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('deals', 'store_id', 'agent_id', 'status', 'created_at')

    # ---------- Hospitality ----------
    if 'units' not in existing_tables:
        op.create_table('units',
            _id(),
            _store_fk(),
            sa.Column('unit_number', sa.String(), nullable=False),
            sa.Column('unit_type', sa.String(), nullable=False),
            sa.Column('floor', sa.String(), nullable=True),
            sa.Column('max_occupancy', sa.Integer(), nullable=True),
            sa.Column('base_rate', sa.Float(), nullable=False),
            sa.Column('amenities', sa.JSON(), nullable=True),
            sa.Column('images', sa.JSON(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('units', 'store_id', 'status', 'created_at')

    if 'housekeeping_tasks' not in existing_tables:
        op.create_table('housekeeping_tasks',
            _id(),
            _store_fk(),
            sa.Column('unit_id', sa.String(length=36), nullable=False),
            sa.Column('assigned_to', sa.String(length=36), nullable=True),
            sa.Column('task_type', sa.String(), nullable=False),
            sa.Column('priority', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('scheduled_at', sa.DateTime(), nullable=True),
            sa.Column('completed_at', sa.DateTime(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['unit_id'], ['units.id'], ),
            sa.ForeignKeyConstraint(['assigned_to'], ['staff.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('housekeeping_tasks', 'store_id', 'unit_id', 'assigned_to', 'status', 'created_at')

    # ---------- Billing ----------
    if 'invoices' not in existing_tables:
        op.create_table('invoices',
            _id(),
            _store_fk(),
            sa.Column('invoice_number', sa.String(), nullable=False),
            sa.Column('party_type', sa.String(), nullable=False),
            sa.Column('party_id', sa.String(length=36), nullable=True),
            sa.Column('source_type', sa.String(), nullable=False),
            sa.Column('source_id', sa.String(length=36), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('subtotal', sa.Float(), nullable=False),
            sa.Column('tax_amount', sa.Float(), nullable=False),
            sa.Column('discount_amount', sa.Float(), nullable=False),
            sa.Column('total_amount', sa.Float(), nullable=False),
            sa.Column('amount_paid', sa.Float(), nullable=False),
            sa.Column('amount_due', sa.Float(), nullable=False),
            sa.Column('due_date', sa.Date(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('metadata', sa.JSON(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('invoices', 'store_id', 'invoice_number', 'party_id', 'status', 'created_at')

    if 'invoice_items' not in existing_tables:
        op.create_table('invoice_items',
            _id(),
            sa.Column('invoice_id', sa.String(length=36), nullable=False),
            sa.Column('description', sa.String(), nullable=False),
            sa.Column('quantity', sa.Float(), nullable=False),
            sa.Column('unit_price', sa.Float(), nullable=False),
            sa.Column('discount', sa.Float(), nullable=False),
            sa.Column('tax_rate', sa.Float(), nullable=False),
            sa.Column('line_total', sa.Float(), nullable=False),
            sa.Column('item_type', sa.String(), nullable=False),
            sa.Column('item_id', sa.String(length=36), nullable=True),
            sa.Column('sort_order', sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('invoice_items', 'invoice_id')

    if 'billing_payments' not in existing_tables:
        op.create_table('billing_payments',
            _id(),
            _store_fk(),
            sa.Column('invoice_id', sa.String(length=36), nullable=True),
            sa.Column('payment_number', sa.String(), nullable=False),
            sa.Column('amount', sa.Float(), nullable=False),
            sa.Column('method', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('gateway_ref', sa.String(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('paid_at', sa.DateTime(), nullable=True),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('billing_payments', 'store_id', 'invoice_id', 'created_at')

    # ---------- Laundry ----------
    if 'machines' not in existing_tables:
        op.create_table('machines',
            _id(),
            _store_fk(),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('machine_type', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('capacity_kg', sa.Float(), nullable=True),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('machines', 'store_id', 'status', 'created_at')

    if 'laundry_orders' not in existing_tables:
        op.create_table('laundry_orders',
            _id(),
            _store_fk(),
            sa.Column('customer_id', sa.String(length=36), nullable=True),
            sa.Column('order_number', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('total_items', sa.Integer(), nullable=False),
            sa.Column('total_amount', sa.Float(), nullable=False),
            sa.Column('paid_amount', sa.Float(), nullable=False),
            sa.Column('rush_order', sa.Boolean(), nullable=False),
            sa.Column('pickup_date', sa.DateTime(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('laundry_orders', 'store_id', 'status', 'created_at')

    if 'laundry_items' not in existing_tables:
        op.create_table('laundry_items',
            _id(),
            sa.Column('order_id', sa.String(length=36), nullable=False),
            sa.Column('item_type', sa.String(), nullable=False),
            sa.Column('service_type', sa.String(), nullable=False),
            sa.Column('quantity', sa.Integer(), nullable=False),
            sa.Column('unit_price', sa.Float(), nullable=False),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(['order_id'], ['laundry_orders.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('laundry_items', 'order_id')

    # ---------- Medical ----------
    if 'patients' not in existing_tables:
        op.create_table('patients',
            _id(),
            _store_fk(),
            sa.Column('customer_id', sa.String(length=36), nullable=True),
            sa.Column('first_name', sa.String(), nullable=False),
            sa.Column('last_name', sa.String(), nullable=False),
            sa.Column('date_of_birth', sa.Date(), nullable=True),
            sa.Column('gender', sa.String(), nullable=True),
            sa.Column('blood_type', sa.String(), nullable=True),
            sa.Column('phone', sa.String(), nullable=True),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('emergency_contact', sa.JSON(), nullable=True),
            sa.Column('allergies', sa.JSON(), nullable=True),
            sa.Column('insurance_info', sa.JSON(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('patients', 'store_id', 'created_at')

    # ---------- Construction ----------
    if 'projects' not in existing_tables:
        op.create_table('projects',
            _id(),
            _store_fk(),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('projects', 'store_id', 'created_at')

    if 'permits' not in existing_tables:
        op.create_table('permits',
            _id(),
            _store_fk(),
            sa.Column('project_id', sa.String(length=36), nullable=False),
            sa.Column('permit_type', sa.String(), nullable=False),
            sa.Column('permit_number', sa.String(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('issued_date', sa.Date(), nullable=True),
            sa.Column('expiry_date', sa.Date(), nullable=True),
            sa.Column('cost', sa.Float(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('permits', 'store_id', 'project_id', 'status', 'created_at')

    # ---------- Education ----------
    if 'programs' not in existing_tables:
        op.create_table('programs',
            _id(),
            _store_fk(),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('program_type', sa.String(), nullable=False),
            sa.Column('duration_weeks', sa.Integer(), nullable=True),
            sa.Column('price', sa.Float(), nullable=True),
            sa.Column('max_students', sa.Integer(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('programs', 'store_id', 'created_at')

    if 'course_sessions' not in existing_tables:
        op.create_table('course_sessions',
            _id(),
            _store_fk(),
            sa.Column('program_id', sa.String(length=36), nullable=False),
            sa.Column('title', sa.String(), nullable=True),
            sa.Column('scheduled_at', sa.DateTime(), nullable=False),
            sa.Column('duration_minutes', sa.Integer(), nullable=False),
            sa.Column('location', sa.String(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            _timestamp(),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['program_id'], ['programs.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('course_sessions', 'store_id', 'program_id', 'created_at')

    if 'students' not in existing_tables:
        op.create_table('students',
            _id(),
            _store_fk(),
            sa.Column('customer_id', sa.String(length=36), nullable=True),
            sa.Column('first_name', sa.String(), nullable=False),
            sa.Column('last_name', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('phone', sa.String(), nullable=True),
            sa.Column('date_of_birth', sa.Date(), nullable=True),
            sa.Column('guardian_name', sa.String(), nullable=True),
            sa.Column('guardian_phone', sa.String(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('students', 'store_id', 'created_at')

    if 'enrollments' not in existing_tables:
        op.create_table('enrollments',
            _id(),
            _store_fk(),
            sa.Column('student_id', sa.String(length=36), nullable=False),
            sa.Column('program_id', sa.String(length=36), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            _timestamp('enrolled_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['student_id'], ['students.id'], ),
            sa.ForeignKeyConstraint(['program_id'], ['programs.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        _indexes('enrollments', 'store_id', 'student_id', 'program_id', 'enrolled_at')

    if 'attendance' not in existing_tables:
        op.create_table('attendance',
            _id(),
            _store_fk(),
            sa.Column('session_id', sa.String(length=36), nullable=False),
            sa.Column('student_id', sa.String(length=36), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('notes', sa.Text(), nullable=True),
            _timestamp(),
            _timestamp('updated_at'),
            sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
            sa.ForeignKeyConstraint(['session_id'], ['course_sessions.id'], ),
            sa.ForeignKeyConstraint(['student_id'], ['students.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('session_id', 'student_id', name='uq_attendance_session_student')
        )
        _indexes('attendance', 'store_id', 'session_id', 'student_id', 'created_at')


# Children first so foreign keys never dangle
TABLES = [
    'attendance', 'enrollments', 'students', 'course_sessions', 'programs',
    'permits', 'projects', 'patients',
    'laundry_items', 'laundry_orders', 'machines',
    'billing_payments', 'invoice_items', 'invoices',
    'housekeeping_tasks', 'units', 'deals',
    'vouchers', 'compensation_policies', 'flow_execution_logs', 'flows',
    'messages', 'conversations',
    'order_items', 'orders', 'pos_sessions', 'product_variants', 'products',
    'notifications', 'customers', 'staff', 'stores', 'users',
]


def downgrade() -> None:
    """Downgrade schema."""
    for table in TABLES:
        op.drop_table(table)
