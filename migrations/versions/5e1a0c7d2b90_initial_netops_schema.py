"""Initial schema: sites, equipment, profiles, alerts, breakdowns, energy_consumption

Revision ID: 5e1a0c7d2b90
Revises:
Create Date: 2026-10-18 09:12:31.204117

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5e1a0c7d2b90'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table(
        'sites',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('code', sa.String(length=30), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('region', sa.String(length=100), nullable=True),
        sa.Column('address', sa.String(length=300), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('active','maintenance','inactive','fault')", name='ck_site_status',
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
    )

    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('region', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('admin','manager','engineer','technician')", name='ck_profile_role',
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'equipment',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('serial_number', sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('operational','maintenance','faulty','offline')", name='ck_equipment_status',
        ),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_equipment_site_id', 'equipment', ['site_id'])

    op.create_table(
        'alerts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=True),
        sa.Column('equipment_id', sa.String(length=36), nullable=True),
        sa.Column('title', sa.String(length=300), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('severity', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("severity IN ('info','warning','critical')", name='ck_alert_severity'),
        sa.CheckConstraint("status IN ('active','acknowledged','resolved')", name='ck_alert_status'),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_alerts_site_id', 'alerts', ['site_id'])
    op.create_index('ix_alerts_status', 'alerts', ['status'])
    op.create_index('ix_alerts_created_at', 'alerts', ['created_at'])

    op.create_table(
        'breakdowns',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=False),
        sa.Column('equipment_id', sa.String(length=36), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(length=30), nullable=False),
        sa.Column('severity', sa.String(length=10), nullable=False),
        sa.Column('priority', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('impact_users', sa.Integer(), nullable=False),
        sa.Column('estimated_fix_minutes', sa.Integer(), nullable=True,
            comment='Structured estimate; serialized as PT<N>H'),
        sa.Column('reported_by', sa.String(length=36), nullable=True),
        sa.Column('assigned_to', sa.String(length=36), nullable=True),
        sa.Column('reported_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('downtime_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('downtime_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('open','investigating','in_progress','resolved','closed')",
            name='ck_breakdown_status',
        ),
        sa.CheckConstraint("severity IN ('minor','major','critical')", name='ck_breakdown_severity'),
        sa.CheckConstraint(
            "priority IN ('low','medium','high','urgent')", name='ck_breakdown_priority',
        ),
        sa.CheckConstraint('impact_users >= 0', name='ck_breakdown_impact_users'),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reported_by'], ['profiles.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['assigned_to'], ['profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_breakdowns_site_id', 'breakdowns', ['site_id'])
    op.create_index('ix_breakdowns_status', 'breakdowns', ['status'])
    op.create_index('ix_breakdowns_created_at', 'breakdowns', ['created_at'])

    op.create_table(
        'energy_consumption',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=False),
        sa.Column('equipment_id', sa.String(length=36), nullable=True),
        sa.Column('consumption_kwh', sa.Float(), nullable=False),
        sa.Column('cost_amount', sa.Float(), nullable=True),
        sa.Column('period_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('period_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('consumption_kwh > 0', name='ck_energy_consumption_positive'),
        sa.CheckConstraint('period_end > period_start', name='ck_energy_period_order'),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_energy_consumption_site_id', 'energy_consumption', ['site_id'])
    op.create_index('ix_energy_consumption_recorded_at', 'energy_consumption', ['recorded_at'])


def downgrade():
    op.drop_index('ix_energy_consumption_recorded_at', table_name='energy_consumption')
    op.drop_index('ix_energy_consumption_site_id', table_name='energy_consumption')
    op.drop_table('energy_consumption')
    op.drop_index('ix_breakdowns_created_at', table_name='breakdowns')
    op.drop_index('ix_breakdowns_status', table_name='breakdowns')
    op.drop_index('ix_breakdowns_site_id', table_name='breakdowns')
    op.drop_table('breakdowns')
    op.drop_index('ix_alerts_created_at', table_name='alerts')
    op.drop_index('ix_alerts_status', table_name='alerts')
    op.drop_index('ix_alerts_site_id', table_name='alerts')
    op.drop_table('alerts')
    op.drop_index('ix_equipment_site_id', table_name='equipment')
    op.drop_table('equipment')
    op.drop_table('profiles')
    op.drop_table('sites')
