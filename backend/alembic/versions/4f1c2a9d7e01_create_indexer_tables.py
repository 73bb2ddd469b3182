"""Create indexer entity tables

Revision ID: 4f1c2a9d7e01
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4f1c2a9d7e01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UINT256 = sa.Numeric(78, 0)


def upgrade() -> None:
    op.create_table(
        'factories',
        sa.Column('id', sa.String(42), primary_key=True),
        sa.Column('token_type', sa.String(10), nullable=False),
        sa.Column('nft_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
    )
    op.create_table(
        'collections',
        sa.Column('id', sa.String(42), primary_key=True),
        sa.Column('factory_id', sa.String(42), sa.ForeignKey('factories.id'), nullable=False),
        sa.Column('creator', sa.String(42), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('symbol', sa.String(64), nullable=False),
        sa.Column('token_address', sa.String(42), nullable=False),
        sa.Column('token_type', sa.String(10), nullable=False),
        sa.Column('contract_created_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_collections_factory_id', 'collections', ['factory_id'])
    op.create_index('ix_collections_creator', 'collections', ['creator'])

    op.create_table(
        'contract_ownerships',
        sa.Column('id', sa.String(42), primary_key=True),
        sa.Column('contract_id', sa.String(42), sa.ForeignKey('collections.id'), nullable=False),
        sa.Column('previous_owner', sa.String(42), nullable=False),
        sa.Column('owner', sa.String(42), nullable=False),
        sa.Column('transferred_at', sa.BigInteger(), nullable=False),
        sa.Column('transaction_hash', sa.String(66), nullable=False),
    )
    op.create_index('ix_contract_ownerships_owner', 'contract_ownerships', ['owner'])

    op.create_table(
        'token_instances',
        sa.Column('id', sa.String(160), primary_key=True),
        sa.Column('collection_id', sa.String(42), sa.ForeignKey('collections.id'), nullable=False),
        sa.Column('token_id', UINT256, nullable=False),
        sa.Column('total_supply', UINT256, nullable=False),
        sa.Column('minted_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_token_instances_collection_id', 'token_instances', ['collection_id'])

    op.create_table(
        'token_balances',
        sa.Column('id', sa.String(210), primary_key=True),
        sa.Column('instance_id', sa.String(160), sa.ForeignKey('token_instances.id'), nullable=False),
        sa.Column('owner', sa.String(42), nullable=False),
        sa.Column('amount', UINT256, nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('last_updated_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_token_balances_instance_id', 'token_balances', ['instance_id'])
    op.create_index('ix_token_balances_owner', 'token_balances', ['owner'])

    op.create_table(
        'transfers',
        sa.Column('id', sa.String(100), primary_key=True),
        sa.Column('instance_id', sa.String(160), sa.ForeignKey('token_instances.id'), nullable=False),
        sa.Column('from_address', sa.String(42), nullable=False),
        sa.Column('to_address', sa.String(42), nullable=False),
        sa.Column('amount', UINT256, nullable=False),
        sa.Column('transfer_type', sa.String(20), nullable=False),
        sa.Column('related_listing_id', sa.String(80), nullable=True),
        sa.Column('related_bid_id', sa.String(300), nullable=True),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
        sa.Column('transaction_hash', sa.String(66), nullable=False),
    )
    op.create_index('ix_transfers_instance_id', 'transfers', ['instance_id'])
    op.create_index('ix_transfers_from_address', 'transfers', ['from_address'])
    op.create_index('ix_transfers_to_address', 'transfers', ['to_address'])
    op.create_index('ix_transfers_instance_time', 'transfers', ['instance_id', 'timestamp'])

    op.create_table(
        'listings',
        sa.Column('id', sa.String(80), primary_key=True),
        sa.Column('instance_id', sa.String(160), nullable=True),
        sa.Column('seller', sa.String(42), nullable=False),
        sa.Column('token_address', sa.String(42), nullable=False),
        sa.Column('token_id', UINT256, nullable=False),
        sa.Column('amount', UINT256, nullable=False),
        sa.Column('price', UINT256, nullable=False),
        sa.Column('currency', sa.String(42), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_listings_instance_id', 'listings', ['instance_id'])
    op.create_index('ix_listings_seller', 'listings', ['seller'])
    op.create_index('ix_listings_status', 'listings', ['status'])

    op.create_table(
        'listing_history',
        sa.Column('id', sa.String(100), primary_key=True),
        sa.Column('listing_id', sa.String(80), nullable=False),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('instance_id', sa.String(160), nullable=True),
        sa.Column('seller', sa.String(42), nullable=False),
        sa.Column('token_address', sa.String(42), nullable=False),
        sa.Column('token_id', UINT256, nullable=False),
        sa.Column('amount', UINT256, nullable=False),
        sa.Column('price', UINT256, nullable=False),
        sa.Column('currency', sa.String(42), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('transaction_hash', sa.String(66), nullable=False),
    )
    op.create_index('ix_listing_history_listing_id', 'listing_history', ['listing_id'])

    op.create_table(
        'bids',
        sa.Column('id', sa.String(300), primary_key=True),
        sa.Column('instance_id', sa.String(160), nullable=True),
        sa.Column('bidder', sa.String(42), nullable=False),
        sa.Column('token_address', sa.String(42), nullable=False),
        sa.Column('token_id', UINT256, nullable=False),
        sa.Column('token_amount', UINT256, nullable=False),
        sa.Column('amount', UINT256, nullable=False),
        sa.Column('currency', sa.String(42), nullable=False),
        sa.Column('timeout', UINT256, nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_bids_instance_id', 'bids', ['instance_id'])
    op.create_index('ix_bids_bidder', 'bids', ['bidder'])
    op.create_index('ix_bids_status', 'bids', ['status'])

    op.create_table(
        'bid_history',
        sa.Column('id', sa.String(100), primary_key=True),
        sa.Column('bid_id', sa.String(300), nullable=False),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('instance_id', sa.String(160), nullable=True),
        sa.Column('bidder', sa.String(42), nullable=False),
        sa.Column('token_address', sa.String(42), nullable=False),
        sa.Column('token_id', UINT256, nullable=False),
        sa.Column('token_amount', UINT256, nullable=False),
        sa.Column('amount', UINT256, nullable=False),
        sa.Column('currency', sa.String(42), nullable=False),
        sa.Column('timeout', UINT256, nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('transaction_hash', sa.String(66), nullable=False),
    )
    op.create_index('ix_bid_history_bid_id', 'bid_history', ['bid_id'])
    op.create_index('ix_bid_history_bid_time', 'bid_history', ['bid_id', 'timestamp'])

    op.create_table(
        'pending_transfers',
        sa.Column('id', sa.String(200), primary_key=True),
        sa.Column('transaction_hash', sa.String(66), nullable=False),
        sa.Column('token_address', sa.String(42), nullable=False),
        sa.Column('token_id', UINT256, nullable=False),
        sa.Column('transfer_type', sa.String(20), nullable=False),
        sa.Column('listing_id', sa.String(80), nullable=True),
        sa.Column('bid_id', sa.String(300), nullable=True),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_pending_transfers_transaction_hash', 'pending_transfers', ['transaction_hash'])

    op.create_table(
        'processed_events',
        sa.Column('id', sa.String(100), primary_key=True),
        sa.Column('event_name', sa.String(50), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
    )
    op.create_index('ix_processed_events_block_number', 'processed_events', ['block_number'])


def downgrade() -> None:
    op.drop_table('processed_events')
    op.drop_table('pending_transfers')
    op.drop_table('bid_history')
    op.drop_table('bids')
    op.drop_table('listing_history')
    op.drop_table('listings')
    op.drop_table('transfers')
    op.drop_table('token_balances')
    op.drop_table('token_instances')
    op.drop_table('contract_ownerships')
    op.drop_table('collections')
    op.drop_table('factories')
