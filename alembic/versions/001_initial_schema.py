"""initial schema - create all tables

Revision ID: 001
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    # Source records
    op.create_table(
        'invoices',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('invoice_number', sa.String(64), nullable=False),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_email', sa.String(255), nullable=True),
        sa.Column('project_title', sa.String(255), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='GBP'),
        sa.Column('status', sa.String(32), nullable=False, server_default='draft'),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *timestamps(),
    )
    
    op.create_table(
        'leads',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(64), nullable=True),
        sa.Column('company_name', sa.String(255), nullable=True),
        sa.Column('project_type', sa.String(255), nullable=True),
        sa.Column('status', sa.String(32), nullable=False, server_default='new'),
        sa.Column('notes', sa.Text(), nullable=True),
        *timestamps(),
    )
    
    op.create_table(
        'customers',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(64), nullable=True),
        sa.Column('company_name', sa.String(255), nullable=True),
        *timestamps(),
    )
    
    # Per-user integration settings
    op.create_table(
        'payment_provider_settings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('provider_type', sa.String(32), nullable=False, server_default='stripe'),
        sa.Column('encrypted_credentials', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *timestamps(),
    )
    
    op.create_table(
        'external_crm_settings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, unique=True, index=True),
        sa.Column('zapier_webhook', sa.Text(), nullable=True),
        sa.Column('field_mappings', sa.JSON(), nullable=False),
        *timestamps(),
    )
    
    # Delivery outcomes (sync_status and status as VARCHAR, not enum)
    op.create_table(
        'external_crm_sync_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('record_type', sa.String(32), nullable=False),
        sa.Column('record_id', sa.String(64), nullable=False),
        sa.Column('external_crm', sa.String(32), nullable=False),
        sa.Column('sync_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), server_default='0'),
        sa.Column('zapier_webhook', sa.Text(), nullable=False, server_default=''),
        sa.Column('field_mappings', sa.JSON(), nullable=False),
        sa.Column('synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    
    op.create_table(
        'message_delivery_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('invoice_id', sa.String(36), nullable=True, index=True),
        sa.Column('message_type', sa.String(20), nullable=False),
        sa.Column('recipient_email', sa.String(255), nullable=True),
        sa.Column('recipient_phone', sa.String(64), nullable=True),
        sa.Column('message_content', sa.Text(), nullable=False, server_default=''),
        sa.Column('external_message_id', sa.String(255), nullable=True),
        sa.Column('delivery_status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), server_default='0'),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    
    op.create_table(
        'analytics_events',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('entity_type', sa.String(32), nullable=False),
        sa.Column('entity_id', sa.String(64), nullable=False, index=True),
        sa.Column('event_type', sa.String(64), nullable=False),
        sa.Column('event_data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    
    op.create_table(
        'video_generations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('project_id', sa.String(64), nullable=False, index=True),
        sa.Column('video_type', sa.String(20), nullable=False, server_default='before_after'),
        sa.Column('before_image_url', sa.Text(), nullable=False),
        sa.Column('after_image_url', sa.Text(), nullable=False),
        sa.Column('testimonial_text', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('video_url', sa.Text(), nullable=True),
        sa.Column('thumbnail_url', sa.Text(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('runwayml_task_id', sa.String(64), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )


def downgrade() -> None:
    op.drop_table('video_generations')
    op.drop_table('analytics_events')
    op.drop_table('message_delivery_logs')
    op.drop_table('external_crm_sync_logs')
    op.drop_table('external_crm_settings')
    op.drop_table('payment_provider_settings')
    op.drop_table('customers')
    op.drop_table('leads')
    op.drop_table('invoices')
