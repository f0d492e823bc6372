"""create catalog, instances, tags and inventory

Revision ID: 0001
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(onupdate: bool = True) -> list[sa.Column]:
    cols = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)]
    if onupdate:
        cols.append(sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False))
    return cols


def upgrade() -> None:
    op.create_table('categories',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('name', sa.String(length=100), nullable=False),
    sa.Column('type', sa.String(length=20), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('attributes', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('sort_order', sa.Integer(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id', name='pk_categories'),
    sa.UniqueConstraint('name', name='uq_categories_name')
    )
    op.create_table('skus',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('sku_code', sa.String(length=100), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('category_id', sa.UUID(), nullable=False),
    sa.Column('unit_cost', sa.Numeric(precision=18, scale=4), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('is_bundle', sa.Boolean(), nullable=False),
    sa.Column('barcode', sa.String(length=100), nullable=True),
    sa.Column('manufacturer_model', sa.String(length=255), nullable=False),
    sa.Column('understocked_threshold', sa.Integer(), nullable=False),
    sa.Column('overstocked_threshold', sa.Integer(), nullable=False),
    sa.Column('created_by', sa.String(length=255), nullable=False),
    sa.Column('last_updated_by', sa.String(length=255), nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['category_id'], ['categories.id'], name='fk_skus_category_id_categories', ondelete='RESTRICT'),
    sa.PrimaryKeyConstraint('id', name='pk_skus'),
    sa.UniqueConstraint('sku_code', name='uq_skus_sku_code')
    )
    op.create_index('ix_skus_category_id', 'skus', ['category_id'])
    op.create_index('ix_skus_barcode', 'skus', ['barcode'])

    op.create_table('sku_cost_history',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('sku_id', sa.UUID(), nullable=False),
    sa.Column('cost', sa.Numeric(precision=18, scale=4), nullable=False),
    sa.Column('effective_date', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_by', sa.String(length=255), nullable=False),
    sa.Column('notes', sa.Text(), nullable=False),
    sa.CheckConstraint('cost >= 0', name='ck_sku_cost_history_cost_non_negative'),
    sa.ForeignKeyConstraint(['sku_id'], ['skus.id'], name='fk_sku_cost_history_sku_id_skus', ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name='pk_sku_cost_history')
    )
    op.create_index('ix_sku_cost_history_sku_id', 'sku_cost_history', ['sku_id'])

    op.create_table('sku_bundle_items',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('bundle_sku_id', sa.UUID(), nullable=False),
    sa.Column('component_sku_id', sa.UUID(), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.CheckConstraint('quantity >= 1', name='ck_sku_bundle_items_quantity_positive'),
    sa.ForeignKeyConstraint(['bundle_sku_id'], ['skus.id'], name='fk_sku_bundle_items_bundle_sku_id_skus', ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['component_sku_id'], ['skus.id'], name='fk_sku_bundle_items_component_sku_id_skus', ondelete='RESTRICT'),
    sa.PrimaryKeyConstraint('id', name='pk_sku_bundle_items'),
    sa.UniqueConstraint('bundle_sku_id', 'component_sku_id', name='uq_sku_bundle_items_line')
    )
    op.create_index('ix_sku_bundle_items_bundle_sku_id', 'sku_bundle_items', ['bundle_sku_id'])

    op.create_table('tags',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('customer_name', sa.String(length=255), nullable=False),
    sa.Column('project_name', sa.String(length=255), nullable=False),
    sa.Column('tag_type', sa.String(length=20), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('notes', sa.Text(), nullable=False),
    sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_by', sa.String(length=255), nullable=False),
    sa.Column('last_updated_by', sa.String(length=255), nullable=False),
    sa.Column('fulfilled_date', sa.DateTime(timezone=True), nullable=True),
    sa.Column('fulfilled_by', sa.String(length=255), nullable=True),
    sa.Column('cancelled_date', sa.DateTime(timezone=True), nullable=True),
    sa.Column('cancelled_by', sa.String(length=255), nullable=True),
    sa.Column('cancellation_reason', sa.Text(), nullable=True),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id', name='pk_tags')
    )
    op.create_index('ix_tags_customer_name', 'tags', ['customer_name'])
    op.create_index('ix_tags_status_due', 'tags', ['status', 'due_date'])
    op.create_index('ix_tags_type_status', 'tags', ['tag_type', 'status'])

    op.create_table('tag_sku_items',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('tag_id', sa.UUID(), nullable=False),
    sa.Column('sku_id', sa.UUID(), nullable=False),
    sa.Column('selection_method', sa.String(length=20), nullable=False),
    sa.Column('notes', sa.Text(), nullable=False),
    *_timestamps(onupdate=False),
    sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], name='fk_tag_sku_items_tag_id_tags', ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['sku_id'], ['skus.id'], name='fk_tag_sku_items_sku_id_skus', ondelete='RESTRICT'),
    sa.PrimaryKeyConstraint('id', name='pk_tag_sku_items'),
    sa.UniqueConstraint('tag_id', 'sku_id', name='uq_tag_sku_items_line')
    )
    op.create_index('ix_tag_sku_items_tag_id', 'tag_sku_items', ['tag_id'])
    op.create_index('ix_tag_sku_items_sku_id', 'tag_sku_items', ['sku_id'])

    op.create_table('instances',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('sku_id', sa.UUID(), nullable=False),
    sa.Column('acquisition_date', sa.DateTime(timezone=True), nullable=False),
    sa.Column('acquisition_cost', sa.Numeric(precision=18, scale=4), nullable=False),
    sa.Column('location', sa.String(length=255), nullable=False),
    sa.Column('supplier', sa.String(length=255), nullable=False),
    sa.Column('reference_number', sa.String(length=100), nullable=False),
    sa.Column('notes', sa.Text(), nullable=False),
    sa.Column('added_by', sa.String(length=255), nullable=False),
    sa.Column('tag_id', sa.UUID(), nullable=True),
    sa.Column('tag_item_id', sa.UUID(), nullable=True),
    sa.Column('version', sa.Integer(), nullable=False),
    *_timestamps(),
    sa.CheckConstraint('acquisition_cost >= 0', name='ck_instances_acquisition_cost_non_negative'),
    sa.CheckConstraint('(tag_id IS NULL) = (tag_item_id IS NULL)', name='ck_instances_tag_reference_pair'),
    sa.ForeignKeyConstraint(['sku_id'], ['skus.id'], name='fk_instances_sku_id_skus', ondelete='RESTRICT'),
    sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], name='fk_instances_tag_id_tags', ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['tag_item_id'], ['tag_sku_items.id'], name='fk_instances_tag_item_id_tag_sku_items', ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id', name='pk_instances')
    )
    op.create_index('ix_instances_tag_id', 'instances', ['tag_id'])
    op.create_index('ix_instances_tag_item_id', 'instances', ['tag_item_id'])
    op.create_index('ix_instances_sku_tag', 'instances', ['sku_id', 'tag_id'])
    op.create_index('ix_instances_sku_acquired', 'instances', ['sku_id', 'acquisition_date'])
    op.create_index('ix_instances_sku_cost', 'instances', ['sku_id', 'acquisition_cost'])

    op.create_table('inventory',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('sku_id', sa.UUID(), nullable=False),
    sa.Column('total_quantity', sa.Integer(), nullable=False),
    sa.Column('available_quantity', sa.Integer(), nullable=False),
    sa.Column('reserved_quantity', sa.Integer(), nullable=False),
    sa.Column('broken_quantity', sa.Integer(), nullable=False),
    sa.Column('loaned_quantity', sa.Integer(), nullable=False),
    sa.Column('minimum_stock_level', sa.Integer(), nullable=False),
    sa.Column('reorder_point', sa.Integer(), nullable=False),
    sa.Column('maximum_stock_level', sa.Integer(), nullable=True),
    sa.Column('primary_location', sa.String(length=255), nullable=False),
    sa.Column('total_value', sa.Numeric(precision=18, scale=4), nullable=False),
    sa.Column('average_cost', sa.Numeric(precision=18, scale=4), nullable=False),
    sa.Column('is_low_stock', sa.Boolean(), nullable=False),
    sa.Column('is_out_of_stock', sa.Boolean(), nullable=False),
    sa.Column('is_overstock', sa.Boolean(), nullable=False),
    sa.Column('last_movement_date', sa.DateTime(timezone=True), nullable=True),
    sa.Column('last_updated_by', sa.String(length=255), nullable=False),
    sa.Column('version', sa.Integer(), nullable=False),
    *_timestamps(),
    sa.CheckConstraint('available_quantity >= 0', name='ck_inventory_available_non_negative'),
    sa.CheckConstraint('reserved_quantity >= 0', name='ck_inventory_reserved_non_negative'),
    sa.CheckConstraint('broken_quantity >= 0', name='ck_inventory_broken_non_negative'),
    sa.CheckConstraint('loaned_quantity >= 0', name='ck_inventory_loaned_non_negative'),
    sa.CheckConstraint('total_quantity >= 0', name='ck_inventory_total_non_negative'),
    sa.ForeignKeyConstraint(['sku_id'], ['skus.id'], name='fk_inventory_sku_id_skus', ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id', name='pk_inventory'),
    sa.UniqueConstraint('sku_id', name='uq_inventory_sku_id')
    )


def downgrade() -> None:
    op.drop_table('inventory')
    op.drop_table('instances')
    op.drop_table('tag_sku_items')
    op.drop_table('tags')
    op.drop_table('sku_bundle_items')
    op.drop_table('sku_cost_history')
    op.drop_table('skus')
    op.drop_table('categories')
