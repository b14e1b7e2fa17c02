"""org reference tables, products and hourly worksheets

Revision ID: worksheet_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision: str = 'worksheet_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

shift_type = sa.Enum('NORMAL_8H', 'EXTENDED_9_5H', 'OVERTIME_11H', name='shift_type')
worksheet_status = sa.Enum('ACTIVE', 'COMPLETED', 'ARCHIVED', name='worksheet_status')
record_status = sa.Enum('PENDING', 'COMPLETED', name='record_status')
worker_role = sa.Enum('SUPERADMIN', 'ADMIN', 'USER', name='worker_role')


def upgrade() -> None:
    """Upgrade schema."""
    # Org hierarchy
    op.create_table(
        'offices',
        sa.Column('office_id', UUID(as_uuid=True), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('office_id'),
        sa.UniqueConstraint('code')
    )
    op.create_table(
        'departments',
        sa.Column('department_id', UUID(as_uuid=True), nullable=False),
        sa.Column('office_id', UUID(as_uuid=True), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['office_id'], ['offices.office_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('department_id')
    )
    op.create_index(op.f('ix_departments_office_id'), 'departments', ['office_id'], unique=False)
    op.create_table(
        'teams',
        sa.Column('team_id', UUID(as_uuid=True), nullable=False),
        sa.Column('department_id', UUID(as_uuid=True), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['department_id'], ['departments.department_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('team_id')
    )
    op.create_index(op.f('ix_teams_department_id'), 'teams', ['department_id'], unique=False)

    # groups.leader_id -> workers is added after workers exists
    op.create_table(
        'groups',
        sa.Column('group_id', UUID(as_uuid=True), nullable=False),
        sa.Column('team_id', UUID(as_uuid=True), nullable=False),
        sa.Column('leader_id', UUID(as_uuid=True), nullable=True),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['team_id'], ['teams.team_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('group_id')
    )
    op.create_index(op.f('ix_groups_team_id'), 'groups', ['team_id'], unique=False)
    op.create_index(op.f('ix_groups_leader_id'), 'groups', ['leader_id'], unique=False)

    op.create_table(
        'workers',
        sa.Column('worker_id', UUID(as_uuid=True), nullable=False),
        sa.Column('group_id', UUID(as_uuid=True), nullable=True),
        sa.Column('employee_code', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('role', worker_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['group_id'], ['groups.group_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('worker_id')
    )
    op.create_index(op.f('ix_workers_group_id'), 'workers', ['group_id'], unique=False)
    op.create_index(op.f('ix_workers_employee_code'), 'workers', ['employee_code'], unique=True)
    op.create_foreign_key(
        'fk_groups_leader_id', 'groups', 'workers', ['leader_id'], ['worker_id'], ondelete='SET NULL'
    )

    # Products
    op.create_table(
        'products',
        sa.Column('product_id', UUID(as_uuid=True), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('product_id'),
        sa.UniqueConstraint('code')
    )
    op.create_table(
        'processes',
        sa.Column('process_id', UUID(as_uuid=True), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('process_id'),
        sa.UniqueConstraint('code')
    )
    op.create_table(
        'product_processes',
        sa.Column('product_process_id', UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), nullable=False),
        sa.Column('process_id', UUID(as_uuid=True), nullable=False),
        sa.Column('standard_output_per_hour', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.product_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['process_id'], ['processes.process_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('product_process_id'),
        sa.UniqueConstraint('product_id', 'process_id', name='uq_product_processes_pair')
    )
    op.create_index(op.f('ix_product_processes_product_id'), 'product_processes', ['product_id'], unique=False)
    op.create_index(op.f('ix_product_processes_process_id'), 'product_processes', ['process_id'], unique=False)

    # Worksheets
    op.create_table(
        'worksheets',
        sa.Column('worksheet_id', UUID(as_uuid=True), nullable=False),
        sa.Column('worker_id', UUID(as_uuid=True), nullable=False),
        sa.Column('group_id', UUID(as_uuid=True), nullable=False),
        sa.Column('office_id', UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), nullable=False),
        sa.Column('process_id', UUID(as_uuid=True), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('shift_type', shift_type, nullable=False),
        sa.Column('planned_output_per_hour', sa.Integer(), nullable=False),
        sa.Column('status', worksheet_status, nullable=False),
        sa.Column('created_by_id', UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.worker_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.group_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['office_id'], ['offices.office_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.product_id']),
        sa.ForeignKeyConstraint(['process_id'], ['processes.process_id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['workers.worker_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('worksheet_id'),
        sa.UniqueConstraint('worker_id', 'work_date', name='uq_worksheets_worker_date')
    )
    op.create_index(op.f('ix_worksheets_worker_id'), 'worksheets', ['worker_id'], unique=False)
    op.create_index(op.f('ix_worksheets_group_id'), 'worksheets', ['group_id'], unique=False)
    op.create_index(op.f('ix_worksheets_office_id'), 'worksheets', ['office_id'], unique=False)
    op.create_index(op.f('ix_worksheets_work_date'), 'worksheets', ['work_date'], unique=False)

    op.create_table(
        'worksheet_records',
        sa.Column('record_id', UUID(as_uuid=True), nullable=False),
        sa.Column('worksheet_id', UUID(as_uuid=True), nullable=False),
        sa.Column('work_hour', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('planned_output', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('actual_output', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', record_status, nullable=False),
        sa.Column('updated_by_id', UUID(as_uuid=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['worksheet_id'], ['worksheets.worksheet_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['updated_by_id'], ['workers.worker_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('record_id'),
        sa.UniqueConstraint('worksheet_id', 'work_hour', name='uq_worksheet_records_hour')
    )
    op.create_index(op.f('ix_worksheet_records_worksheet_id'), 'worksheet_records', ['worksheet_id'], unique=False)

    op.create_table(
        'worksheet_record_items',
        sa.Column('item_id', UUID(as_uuid=True), nullable=False),
        sa.Column('record_id', UUID(as_uuid=True), nullable=False),
        sa.Column('entry_index', sa.Integer(), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), nullable=False),
        sa.Column('process_id', UUID(as_uuid=True), nullable=False),
        sa.Column('planned_output', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('actual_output', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['record_id'], ['worksheet_records.record_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.product_id']),
        sa.ForeignKeyConstraint(['process_id'], ['processes.process_id']),
        sa.PrimaryKeyConstraint('item_id'),
        sa.UniqueConstraint('record_id', 'entry_index', name='uq_worksheet_record_items_entry')
    )
    op.create_index(op.f('ix_worksheet_record_items_record_id'), 'worksheet_record_items', ['record_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_worksheet_record_items_record_id'), table_name='worksheet_record_items')
    op.drop_table('worksheet_record_items')
    op.drop_index(op.f('ix_worksheet_records_worksheet_id'), table_name='worksheet_records')
    op.drop_table('worksheet_records')
    op.drop_index(op.f('ix_worksheets_work_date'), table_name='worksheets')
    op.drop_index(op.f('ix_worksheets_office_id'), table_name='worksheets')
    op.drop_index(op.f('ix_worksheets_group_id'), table_name='worksheets')
    op.drop_index(op.f('ix_worksheets_worker_id'), table_name='worksheets')
    op.drop_table('worksheets')
    op.drop_index(op.f('ix_product_processes_process_id'), table_name='product_processes')
    op.drop_index(op.f('ix_product_processes_product_id'), table_name='product_processes')
    op.drop_table('product_processes')
    op.drop_table('processes')
    op.drop_table('products')
    op.drop_constraint('fk_groups_leader_id', 'groups', type_='foreignkey')
    op.drop_index(op.f('ix_workers_employee_code'), table_name='workers')
    op.drop_index(op.f('ix_workers_group_id'), table_name='workers')
    op.drop_table('workers')
    op.drop_index(op.f('ix_groups_leader_id'), table_name='groups')
    op.drop_index(op.f('ix_groups_team_id'), table_name='groups')
    op.drop_table('groups')
    op.drop_index(op.f('ix_teams_department_id'), table_name='teams')
    op.drop_table('teams')
    op.drop_index(op.f('ix_departments_office_id'), table_name='departments')
    op.drop_table('departments')
    op.drop_table('offices')

    bind = op.get_bind()
    for enum in (record_status, worksheet_status, shift_type, worker_role):
        enum.drop(bind, checkfirst=True)
