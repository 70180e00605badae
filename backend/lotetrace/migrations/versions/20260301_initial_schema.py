"""Initial schema: organizations, lotes, zones, stays, audit log, sensors, alerts, snapshots

Revision ID: 20260301_initial_schema
Revises:
Create Date: 2026-03-01

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20260301_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('email', sa.String(150), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_organizations_id', 'organizations', ['id'])

    op.create_table(
        'lotes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('identification', sa.String(100), nullable=False),
        sa.Column('initial_animals', sa.Integer(), nullable=False),
        sa.Column('final_animals', sa.Integer(), nullable=True),
        sa.Column('food_regime', sa.String(100), nullable=True),
        sa.Column('custom_data', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('parent_lote_id', sa.Integer(), sa.ForeignKey('lotes.id'), nullable=True),
        sa.Column('piece_type', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('active', 'finished')", name='ck_lotes_status'),
        sa.CheckConstraint('initial_animals >= 0', name='ck_lotes_initial_animals'),
    )
    op.create_index('ix_lotes_id', 'lotes', ['id'])
    op.create_index('ix_lotes_organization_id', 'lotes', ['organization_id'])
    op.create_index('ix_lotes_parent_lote_id', 'lotes', ['parent_lote_id'])

    op.create_table(
        'zones',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('stage', sa.String(20), nullable=False),
        sa.Column('fixed_info', sa.JSON(), nullable=False),
        sa.Column('targets', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "stage IN ('breeding', 'fattening', 'slaughter', 'curing', 'distribution')",
            name='ck_zones_stage',
        ),
    )
    op.create_index('ix_zones_id', 'zones', ['id'])
    op.create_index('ix_zones_organization_id', 'zones', ['organization_id'])
    op.create_index('ix_zones_stage', 'zones', ['stage'])

    op.create_table(
        'stays',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('lote_id', sa.Integer(), sa.ForeignKey('lotes.id'), nullable=False),
        sa.Column('zone_id', sa.Integer(), sa.ForeignKey('zones.id'), nullable=True),
        sa.Column('entry_time', sa.DateTime(), nullable=False),
        sa.Column('exit_time', sa.DateTime(), nullable=True),
        sa.Column('created_by_type', sa.String(10), nullable=False, server_default='system'),
        sa.Column('created_by_id', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("created_by_type IN ('system', 'user')", name='ck_stays_created_by_type'),
    )
    op.create_index('ix_stays_id', 'stays', ['id'])
    op.create_index('ix_stays_lote_id', 'stays', ['lote_id'])
    op.create_index('ix_stays_zone_id', 'stays', ['zone_id'])
    op.create_index('ix_stays_lote_entry', 'stays', ['lote_id', 'entry_time'])

    # Al massimo una permanenza aperta per lotto
    op.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS uq_stays_one_open_per_lote "
        "ON stays (lote_id) WHERE exit_time IS NULL"
    )

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('actor_type', sa.String(10), nullable=False),
        sa.Column('actor_id', sa.String(64), nullable=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('old_data', sa.JSON(), nullable=True),
        sa.Column('new_data', sa.JSON(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_audit_log_id', 'audit_log', ['id'])
    op.create_index('ix_audit_log_organization_id', 'audit_log', ['organization_id'])
    op.create_index('ix_audit_log_entity', 'audit_log', ['entity_type', 'entity_id'])

    op.create_table(
        'sensors',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('zone_id', sa.Integer(), sa.ForeignKey('zones.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('device_id', sa.String(50), nullable=False, unique=True),
        sa.Column('sensor_type', sa.String(50), nullable=False),
        sa.Column('unit', sa.String(20), nullable=True),
        sa.Column('validation_min', sa.Numeric(10, 2), nullable=True),
        sa.Column('validation_max', sa.Numeric(10, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('mqtt_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('mqtt_host', sa.String(255), nullable=True),
        sa.Column('mqtt_port', sa.Integer(), nullable=True),
        sa.Column('mqtt_username', sa.String(255), nullable=True),
        sa.Column('mqtt_password', sa.String(255), nullable=True),
        sa.Column('mqtt_topic', sa.String(255), nullable=True),
        sa.Column('field_path', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_sensors_id', 'sensors', ['id'])
    op.create_index('ix_sensors_organization_id', 'sensors', ['organization_id'])
    op.create_index('ix_sensors_zone_id', 'sensors', ['zone_id'])
    op.create_index('ix_sensors_mqtt_topic', 'sensors', ['mqtt_topic'])

    op.create_table(
        'sensor_readings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sensor_id', sa.Integer(), sa.ForeignKey('sensors.id'), nullable=False),
        sa.Column('value', sa.Numeric(15, 6), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('is_simulated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_sensor_readings_id', 'sensor_readings', ['id'])
    op.create_index('ix_sensor_readings_sensor_timestamp', 'sensor_readings', ['sensor_id', 'timestamp'])

    op.create_table(
        'alerts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('sensor_id', sa.Integer(), sa.ForeignKey('sensors.id'), nullable=False),
        sa.Column('zone_id', sa.Integer(), sa.ForeignKey('zones.id'), nullable=False),
        sa.Column('reading_id', sa.Integer(), sa.ForeignKey('sensor_readings.id'), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('value', sa.Numeric(15, 6), nullable=False),
        sa.Column('threshold', sa.Numeric(15, 6), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("type IN ('min_breach', 'max_breach')", name='ck_alerts_type'),
    )
    op.create_index('ix_alerts_id', 'alerts', ['id'])
    op.create_index('ix_alerts_organization_id', 'alerts', ['organization_id'])
    op.create_index('ix_alerts_sensor_id', 'alerts', ['sensor_id'])

    op.create_table(
        'qr_snapshots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('lote_id', sa.Integer(), sa.ForeignKey('lotes.id'), nullable=False),
        sa.Column('public_token', sa.String(64), nullable=False, unique=True),
        sa.Column('snapshot_data', sa.JSON(), nullable=False),
        sa.Column('scan_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by_type', sa.String(10), nullable=False, server_default='system'),
        sa.Column('created_by_id', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_qr_snapshots_id', 'qr_snapshots', ['id'])
    op.create_index('ix_qr_snapshots_lote_id', 'qr_snapshots', ['lote_id'])
    op.create_index('ix_qr_snapshots_public_token', 'qr_snapshots', ['public_token'])


def downgrade() -> None:
    op.drop_table('qr_snapshots')
    op.drop_table('alerts')
    op.drop_table('sensor_readings')
    op.drop_table('sensors')
    op.drop_table('audit_log')
    op.execute("DROP INDEX IF EXISTS uq_stays_one_open_per_lote")
    op.drop_table('stays')
    op.drop_table('zones')
    op.drop_table('lotes')
    op.drop_table('organizations')
