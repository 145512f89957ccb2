"""Create payroll_records table

Revision ID: 0001_create_payroll_records
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = '0001_create_payroll_records'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


PAYROLL_STATUSES = ('DRAFT', 'CALCULATED', 'APPROVED', 'PROCESSED', 'PAID', 'ARCHIVED')
SALARY_TYPES = ('STANDARD', 'SALES')


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)

    if 'payroll_records' in inspector.get_table_names():
        return  # Already exists

    op.create_table(
        'payroll_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),

        # Identity
        sa.Column('company_id', sa.String(64), nullable=False),
        sa.Column('employee_id', sa.String(64), nullable=False),
        sa.Column('month', sa.String(7), nullable=False, comment='YYYY-MM format'),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month_num', sa.Integer(), nullable=False),

        # Workflow
        sa.Column('status', sa.Enum(*PAYROLL_STATUSES, name='payroll_status'), nullable=False),
        sa.Column('salary_type', sa.Enum(*SALARY_TYPES, name='salary_type'), nullable=False),

        # Snapshot and totals
        sa.Column(
            'breakdown',
            sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'),
            nullable=False,
            comment='SalaryBreakdown at time of calculation',
        ),
        sa.Column('gross_pay', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_deductions', sa.Numeric(14, 2), nullable=False),
        sa.Column('net_pay', sa.Numeric(14, 2), nullable=False),
        sa.Column('annual_ctc', sa.Numeric(16, 2), nullable=False),

        # Audit trail
        sa.Column('calculated_by', sa.String(64), nullable=True),
        sa.Column('calculated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', sa.String(64), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed_by', sa.String(64), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_by', sa.String(64), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_by', sa.String(64), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),

        sa.PrimaryKeyConstraint('id', name='pk_payroll_records'),
        sa.UniqueConstraint(
            'company_id', 'employee_id', 'month',
            name='uq_payroll_records_company_id_employee_id_month',
        ),
    )
    op.create_index('ix_payroll_records_id', 'payroll_records', ['id'])
    op.create_index('ix_payroll_records_company_id', 'payroll_records', ['company_id'])
    op.create_index('ix_payroll_records_employee_id', 'payroll_records', ['employee_id'])
    op.create_index('ix_payroll_records_month', 'payroll_records', ['month'])
    op.create_index('ix_payroll_records_status', 'payroll_records', ['status'])


def downgrade() -> None:
    op.drop_index('ix_payroll_records_status', table_name='payroll_records')
    op.drop_index('ix_payroll_records_month', table_name='payroll_records')
    op.drop_index('ix_payroll_records_employee_id', table_name='payroll_records')
    op.drop_index('ix_payroll_records_company_id', table_name='payroll_records')
    op.drop_index('ix_payroll_records_id', table_name='payroll_records')
    op.drop_table('payroll_records')
    sa.Enum(name='salary_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='payroll_status').drop(op.get_bind(), checkfirst=True)
