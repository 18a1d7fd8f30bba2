from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'user_coupons',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False, index=True),
        sa.Column('coupon_id', sa.Integer, nullable=False),
        sa.Column('is_used', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('used_at', sa.DateTime, nullable=True),
        sa.Column('order_id', sa.Integer, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False)
    )
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_number', sa.String(50), nullable=False, unique=True, index=True),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('consultation_status', sa.String(40), nullable=False),
        sa.Column('total_amount', sa.Integer, nullable=False),
        sa.Column('shipping_fee', sa.Integer, nullable=False),
        sa.Column('coupon_discount', sa.Integer, nullable=False),
        sa.Column('used_points', sa.Integer, nullable=False),
        sa.Column('user_id', sa.String(64), nullable=True, index=True),
        sa.Column('user_coupon_id', sa.Integer, sa.ForeignKey('user_coupons.id'), nullable=True),
        sa.Column('payment_key', sa.String(100), nullable=True),
        sa.Column('user_name', sa.String(100), nullable=True),
        sa.Column('user_phone', sa.String(30), nullable=True),
        sa.Column('shipping_name', sa.String(100), nullable=True),
        sa.Column('shipping_phone', sa.String(30), nullable=True),
        sa.Column('shipping_company', sa.String(50), nullable=True),
        sa.Column('tracking_number', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, index=True),
        sa.Column('updated_at', sa.DateTime, nullable=False)
    )
    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id'), nullable=False, index=True),
        sa.Column('product_id', sa.String(64), nullable=False),
        sa.Column('product_name', sa.String(200), nullable=False),
        sa.Column('product_price', sa.Integer, nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('option_id', sa.String(64), nullable=True),
        sa.Column('option_name', sa.String(200), nullable=True),
        sa.Column('option_price', sa.Integer, nullable=True),
        sa.Column('selected_addons', sa.JSON, nullable=True),
        sa.Column('selected_option_settings', sa.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False)
    )
    op.create_table(
        'user_points',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False, unique=True, index=True),
        sa.Column('points', sa.Integer, nullable=False),
        sa.Column('total_earned', sa.Integer, nullable=False),
        sa.Column('total_used', sa.Integer, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False)
    )
    op.create_table(
        'point_history',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False, index=True),
        sa.Column('points', sa.Integer, nullable=False),
        sa.Column('type', sa.String(10), nullable=False),
        sa.Column('reason', sa.String(255), nullable=False),
        sa.Column('order_id', sa.Integer, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False)
    )

def downgrade():
    op.drop_table('point_history')
    op.drop_table('user_points')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('user_coupons')
