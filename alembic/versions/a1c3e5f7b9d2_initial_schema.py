"""initial schema

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-17 09:12:44.318207

Creates the site registry, activity record, scenario, credit ledger and
renewables tables. New databases may also use create_all() (see
carbonledger/main.py lifespan) and be stamped with:

    alembic stamp head
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'sites',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('state', sa.String(100), nullable=True),
        sa.Column('grid_region', sa.String(50), nullable=True),
        sa.Column('climate_zone', sa.String(50), nullable=True),
        sa.Column('annual_capacity_tons', sa.Float(), nullable=False, server_default='0'),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_sites_state', 'sites', ['state'])
    op.create_index('ix_sites_grid_region', 'sites', ['grid_region'])

    op.create_table(
        'emission_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('site_id', sa.String(36),
                  sa.ForeignKey('sites.id', ondelete='CASCADE'), nullable=False),
        sa.Column('activity_type', sa.String(100), nullable=False),
        sa.Column('scope', sa.String(10), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(20), nullable=False),
        sa.Column('co2e_tons', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount >= 0', name='ck_emission_amount_non_negative'),
    )
    op.create_index('ix_emission_records_site_id', 'emission_records', ['site_id'])
    op.create_index('ix_emission_records_activity_type', 'emission_records', ['activity_type'])
    op.create_index('ix_emission_records_scope', 'emission_records', ['scope'])
    op.create_index('ix_emission_records_date', 'emission_records', ['date'])
    op.create_index('ix_emission_site_date', 'emission_records', ['site_id', 'date'])

    op.create_table(
        'value_chain_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('site_id', sa.String(36),
                  sa.ForeignKey('sites.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('sub_category', sa.String(100), nullable=True),
        sa.Column('vendor_name', sa.String(255), nullable=True),
        sa.Column('scope', sa.String(10), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(20), nullable=False),
        sa.Column('co2e_tons', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount >= 0', name='ck_value_chain_amount_non_negative'),
    )
    op.create_index('ix_value_chain_records_site_id', 'value_chain_records', ['site_id'])
    op.create_index('ix_value_chain_records_category', 'value_chain_records', ['category'])
    op.create_index('ix_value_chain_records_date', 'value_chain_records', ['date'])

    op.create_table(
        'scenarios',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('site_id', sa.String(36),
                  sa.ForeignKey('sites.id', ondelete='CASCADE'), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('target_year', sa.Integer(), nullable=True),
        sa.Column('interventions', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_scenarios_site_id', 'scenarios', ['site_id'])

    op.create_table(
        'carbon_credit_lots',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('project_name', sa.String(255), nullable=False),
        sa.Column('credit_type', sa.String(100), nullable=True),
        sa.Column('vintage', sa.Integer(), nullable=True),
        sa.Column('quantity_tco2e', sa.Numeric(15, 4), nullable=False),
        sa.Column('available_tco2e', sa.Numeric(15, 4), nullable=False),
        sa.Column('retired_tco2e', sa.Numeric(15, 4), nullable=False, server_default='0'),
        sa.Column('cost_per_unit', sa.Numeric(12, 2), nullable=True),
        sa.Column('verification_standard', sa.String(100), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('available_tco2e >= 0', name='ck_credit_available_non_negative'),
        sa.CheckConstraint('retired_tco2e >= 0', name='ck_credit_retired_non_negative'),
    )
    op.create_index('ix_carbon_credit_lots_status', 'carbon_credit_lots', ['status'])

    op.create_table(
        'carbon_credit_retirements',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('lot_id', sa.String(36),
                  sa.ForeignKey('carbon_credit_lots.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quantity_tco2e', sa.Numeric(15, 4), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('retired_at', sa.DateTime(), nullable=False),
    )
    op.create_index(
        'ix_carbon_credit_retirements_lot_id', 'carbon_credit_retirements', ['lot_id']
    )

    op.create_table(
        'renewable_assets',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('site_id', sa.String(36),
                  sa.ForeignKey('sites.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('asset_type', sa.String(50), nullable=False),
        sa.Column('capacity_kw', sa.Float(), nullable=False),
        sa.Column('commissioning_date', sa.Date(), nullable=True),
        sa.Column('storage_capacity_kwh', sa.Float(), nullable=False, server_default='0'),
        sa.Column('annual_degradation_rate', sa.Float(), nullable=False, server_default='0.5'),
        sa.Column('technical_details', sa.JSON(), nullable=False),
        sa.Column('match_with_load_profile', sa.Boolean(), nullable=False,
                  server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_renewable_assets_site_id', 'renewable_assets', ['site_id'])

    op.create_table(
        'renewable_generation',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('asset_id', sa.String(36),
                  sa.ForeignKey('renewable_assets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('generated_kwh', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_renewable_generation_asset_id', 'renewable_generation', ['asset_id'])


def downgrade() -> None:
    op.drop_table('renewable_generation')
    op.drop_table('renewable_assets')
    op.drop_table('carbon_credit_retirements')
    op.drop_table('carbon_credit_lots')
    op.drop_table('scenarios')
    op.drop_table('value_chain_records')
    op.drop_table('emission_records')
    op.drop_table('sites')
