"""Initial schema - users, stores, listings and draft listings

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_user_id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_external_user_id', 'users', ['external_user_id'], unique=True)

    op.create_table(
        'stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('active_user_id', sa.Integer(), nullable=True),
        sa.Column('store_name', sa.String(), nullable=True),
        sa.Column('ebay_username', sa.String(), nullable=True),
        sa.Column('ebay_user_id', sa.String(), nullable=True),
        sa.Column('ebay_access_token', sa.Text(), nullable=True),
        sa.Column('ebay_refresh_token', sa.Text(), nullable=True),
        sa.Column('ebay_token_expiry', sa.DateTime(), nullable=True),
        sa.Column('marketplace_id', sa.String(), nullable=True),
        sa.Column('payment_policy_id', sa.String(), nullable=True),
        sa.Column('fulfillment_policy_id', sa.String(), nullable=True),
        sa.Column('return_policy_id', sa.String(), nullable=True),
        sa.Column('merchant_location_key', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['active_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('active_user_id'),
    )
    op.create_index('ix_stores_id', 'stores', ['id'])
    op.create_index('ix_stores_user_id', 'stores', ['user_id'])
    op.create_index('ix_stores_ebay_username', 'stores', ['ebay_username'])
    op.create_index('ix_stores_ebay_user_id', 'stores', ['ebay_user_id'])

    op.create_table(
        'listings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('ebay_offer_id', sa.String(), nullable=False),
        sa.Column('ebay_listing_id', sa.String(), nullable=True),
        sa.Column('sku', sa.String(), nullable=True),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.String(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(), nullable=True),
        sa.Column('marketplace_id', sa.String(), nullable=True),
        sa.Column('category_id', sa.String(), nullable=True),
        sa.Column('condition', sa.String(), nullable=True),
        sa.Column('images', sa.JSON(), nullable=True),
        sa.Column('listed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_listings_id', 'listings', ['id'])
    op.create_index('ix_listings_store_id', 'listings', ['store_id'])
    op.create_index('ix_listings_ebay_offer_id', 'listings', ['ebay_offer_id'], unique=True)
    op.create_index('ix_listings_sku', 'listings', ['sku'])
    op.create_index('ix_listings_status', 'listings', ['status'])

    op.create_table(
        'draft_listings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('sku', sa.String(), nullable=True),
        sa.Column('marketplace_id', sa.String(), nullable=True),
        sa.Column('title', sa.String(length=80), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category_id', sa.String(), nullable=True),
        sa.Column('condition', sa.String(), nullable=True),
        sa.Column('price', sa.String(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('specifics', sa.JSON(), nullable=True),
        sa.Column('ai_notes', sa.JSON(), nullable=True),
        sa.Column('ai_extracted_text', sa.Text(), nullable=True),
        sa.Column('ai_raw', sa.JSON(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('offer_id', sa.String(), nullable=True),
        sa.Column('published_listing_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['published_listing_id'], ['listings.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_draft_listings_id', 'draft_listings', ['id'])
    op.create_index('ix_draft_listings_store_id', 'draft_listings', ['store_id'])
    op.create_index('ix_draft_listings_status', 'draft_listings', ['status'])
    op.create_index('ix_draft_listings_offer_id', 'draft_listings', ['offer_id'])


def downgrade() -> None:
    op.drop_table('draft_listings')
    op.drop_table('listings')
    op.drop_table('stores')
    op.drop_table('users')
