"""Create api_keys and workloads

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
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

SCHEMA = 'workload_console'


def upgrade() -> None:
    op.create_table(
        'api_keys',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('prefix', sa.String(10), nullable=True),
        sa.Column('key_hash', sa.String(255), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        schema=SCHEMA,
    )
    op.create_index('ix_api_keys_name', 'api_keys', ['name'], unique=True, schema=SCHEMA)
    op.create_index('ix_api_keys_prefix', 'api_keys', ['prefix'], schema=SCHEMA)

    op.create_table(
        'workloads',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.String(1000), nullable=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('required_cpu', sa.Integer(), nullable=False),
        sa.Column('required_memory', sa.Float(), nullable=False),
        sa.Column('required_storage', sa.Float(), nullable=False),
        sa.Column('container_image', sa.String(500), nullable=True),
        sa.Column('exposed_port', sa.Integer(), nullable=False, server_default='80'),
        sa.Column('environment_variables', sa.Text(), nullable=True),
        sa.Column('deployment_status', sa.String(50), nullable=False, server_default='NotDeployed'),
        sa.Column('container_id', sa.String(100), nullable=True),
        sa.Column('access_url', sa.String(500), nullable=True),
        sa.Column('deployed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ['owner_id'], [f'{SCHEMA}.api_keys.id'],
            name='workloads_owner_id_fkey', ondelete='CASCADE',
        ),
        schema=SCHEMA,
    )
    op.create_index('ix_workloads_owner_id', 'workloads', ['owner_id'], schema=SCHEMA)
    op.create_index('ix_workloads_name', 'workloads', ['name'], schema=SCHEMA)
    op.create_index('ix_workloads_deployment_status', 'workloads', ['deployment_status'], schema=SCHEMA)
    op.create_index('ix_workloads_updated_at', 'workloads', ['updated_at'], schema=SCHEMA)
    op.create_check_constraint(
        'ck_workloads_deployment_status',
        'workloads',
        "deployment_status IN ('NotDeployed', 'Deploying', 'Running', 'Stopped', 'Error')",
        schema=SCHEMA,
    )


def downgrade() -> None:
    op.drop_table('workloads', schema=SCHEMA)
    op.drop_table('api_keys', schema=SCHEMA)
