"""initial_lab_workflow_schema

Revision ID: 5f2c1a7d9e30
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5f2c1a7d9e30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create roles, registries, samples, custody ledger, test runs and reagent tables."""

    # Roles and permissions
    op.create_table('roles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_roles_name', 'roles', ['name'], unique=True)

    op.create_table('permissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_permissions_name', 'permissions', ['name'], unique=True)

    op.create_table('role_permissions',
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('permission_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['permission_id'], ['permissions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('role_id', 'permission_id'),
    )

    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=150), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('role_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_role_id', 'users', ['role_id'], unique=False)

    # Registries
    op.create_table('sample_types',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table('sources',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table('storage_locations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('temperature', sa.Float(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('current_load', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table('experiments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table('tests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('protocol', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    # Samples and custody ledger
    op.create_table('samples',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('unique_sample_id', sa.String(length=100), nullable=False),
        sa.Column('sample_type_id', sa.Integer(), nullable=False),
        sa.Column('source_id', sa.Integer(), nullable=False),
        sa.Column('collection_date', sa.Date(), nullable=True),
        sa.Column('registration_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('storage_location_id', sa.Integer(), nullable=True),
        sa.Column('current_status', sa.String(length=50), nullable=False),
        sa.Column('barcode_qr_code', sa.String(length=150), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "current_status IN ('Registered', 'In Storage', 'In Analysis', 'Discarded', 'Archived')",
            name='ck_samples_current_status',
        ),
        sa.CheckConstraint(
            "current_status != 'In Storage' OR storage_location_id IS NOT NULL",
            name='ck_samples_in_storage_has_location',
        ),
        sa.ForeignKeyConstraint(['sample_type_id'], ['sample_types.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['source_id'], ['sources.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['storage_location_id'], ['storage_locations.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('barcode_qr_code'),
        comment='Physical samples tracked by the lab',
    )
    op.create_index('ix_samples_unique_sample_id', 'samples', ['unique_sample_id'], unique=True)
    op.create_index('ix_samples_sample_type_id', 'samples', ['sample_type_id'], unique=False)
    op.create_index('ix_samples_source_id', 'samples', ['source_id'], unique=False)
    op.create_index('ix_samples_storage_location_id', 'samples', ['storage_location_id'], unique=False)

    op.create_table('chain_of_custody',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sample_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=255), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('previous_location_id', sa.Integer(), nullable=True),
        sa.Column('new_location_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['sample_id'], ['samples.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['previous_location_id'], ['storage_locations.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['new_location_id'], ['storage_locations.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        comment='Append-only chain of custody ledger for samples',
    )
    op.create_index('ix_chain_of_custody_sample_id', 'chain_of_custody', ['sample_id'], unique=False)
    op.create_index('ix_chain_of_custody_user_id', 'chain_of_custody', ['user_id'], unique=False)
    # Ledger reads are ordered by (timestamp, id) within a sample
    op.create_index(
        'ix_chain_of_custody_sample_timestamp',
        'chain_of_custody',
        ['sample_id', 'timestamp', 'id'],
        unique=False,
    )

    # Test runs
    op.create_table('sample_tests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sample_id', sa.Integer(), nullable=False),
        sa.Column('test_id', sa.Integer(), nullable=False),
        sa.Column('experiment_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('results', sa.Text(), nullable=True),
        sa.Column('requested_by_user_id', sa.Integer(), nullable=False),
        sa.Column('assigned_to_user_id', sa.Integer(), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('result_entry_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('validated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('validated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint(
            "status IN ('Pending', 'In Progress', 'Completed', 'Validated', 'Approved', 'Rejected')",
            name='ck_sample_tests_status',
        ),
        sa.ForeignKeyConstraint(['sample_id'], ['samples.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['test_id'], ['tests.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['experiment_id'], ['experiments.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['requested_by_user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['assigned_to_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['validated_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['approved_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        comment='Requested test runs against samples',
    )
    op.create_index('ix_sample_tests_sample_id', 'sample_tests', ['sample_id'], unique=False)
    op.create_index('ix_sample_tests_test_id', 'sample_tests', ['test_id'], unique=False)
    op.create_index('ix_sample_tests_experiment_id', 'sample_tests', ['experiment_id'], unique=False)

    # Reagents and orders
    op.create_table('reagents',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('lot_number', sa.String(length=100), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('manufacturer', sa.String(length=255), nullable=True),
        sa.Column('sds_link', sa.Text(), nullable=True),
        sa.Column('current_stock', sa.Integer(), nullable=False),
        sa.Column('min_stock_level', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('current_stock >= 0', name='ck_reagents_current_stock_non_negative'),
        sa.CheckConstraint('min_stock_level >= 0', name='ck_reagents_min_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('lot_number'),
        comment='Reagent stock by lot',
    )

    op.create_table('reagent_orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('reagent_id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('expected_delivery_date', sa.Date(), nullable=True),
        sa.Column('quantity_ordered', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity_ordered > 0', name='ck_reagent_orders_quantity_positive'),
        sa.CheckConstraint(
            "status IN ('Pending', 'Ordered', 'Shipped', 'Delivered', 'Cancelled')",
            name='ck_reagent_orders_status',
        ),
        sa.ForeignKeyConstraint(['reagent_id'], ['reagents.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        comment='Reagent purchase orders',
    )
    op.create_index('ix_reagent_orders_reagent_id', 'reagent_orders', ['reagent_id'], unique=False)
    op.create_index('ix_reagent_orders_supplier_id', 'reagent_orders', ['supplier_id'], unique=False)


def downgrade() -> None:
    """Drop every lab workflow table."""
    op.drop_index('ix_reagent_orders_supplier_id', table_name='reagent_orders')
    op.drop_index('ix_reagent_orders_reagent_id', table_name='reagent_orders')
    op.drop_table('reagent_orders')
    op.drop_table('reagents')
    op.drop_index('ix_sample_tests_experiment_id', table_name='sample_tests')
    op.drop_index('ix_sample_tests_test_id', table_name='sample_tests')
    op.drop_index('ix_sample_tests_sample_id', table_name='sample_tests')
    op.drop_table('sample_tests')
    op.drop_index('ix_chain_of_custody_sample_timestamp', table_name='chain_of_custody')
    op.drop_index('ix_chain_of_custody_user_id', table_name='chain_of_custody')
    op.drop_index('ix_chain_of_custody_sample_id', table_name='chain_of_custody')
    op.drop_table('chain_of_custody')
    op.drop_index('ix_samples_storage_location_id', table_name='samples')
    op.drop_index('ix_samples_source_id', table_name='samples')
    op.drop_index('ix_samples_sample_type_id', table_name='samples')
    op.drop_index('ix_samples_unique_sample_id', table_name='samples')
    op.drop_table('samples')
    op.drop_table('tests')
    op.drop_table('suppliers')
    op.drop_table('experiments')
    op.drop_table('storage_locations')
    op.drop_table('sources')
    op.drop_table('sample_types')
    op.drop_index('ix_users_role_id', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
    op.drop_table('role_permissions')
    op.drop_index('ix_permissions_name', table_name='permissions')
    op.drop_table('permissions')
    op.drop_index('ix_roles_name', table_name='roles')
    op.drop_table('roles')
