"""agenda_inventario_comisiones

Revision ID: 0001a7c3e9d2
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001a7c3e9d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


appointment_status = sa.Enum(
    'scheduled', 'confirmed', 'arrived', 'in_service', 'completed', 'no_show', 'canceled',
    name='appointmentstatus',
)
item_unit = sa.Enum('unidad', 'caja', 'mililitro', 'gramo', 'frasco', 'otro', name='itemunit')
movement_type = sa.Enum('entry', 'exit', name='stockmovementtype')
movement_reason = sa.Enum(
    'purchase', 'return', 'initial', 'patient_use', 'expired', 'damaged', 'manual_adjustment',
    name='stockmovementreason',
)
commission_status = sa.Enum('pending', 'paid', name='commissionentrystatus')
commission_type = sa.Enum('accrual', 'adjustment', name='commissionentrytype')


def upgrade() -> None:
    # 1. Directorio: profesionales y procedimientos
    op.create_table('professionals',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('clinic_id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('specialty', sa.String(length=100), nullable=True),
        sa.Column('commission_rate', sa.Numeric(precision=5, scale=2), nullable=False, comment='Porcentaje (0-100) sobre el precio del procedimiento'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.CheckConstraint('commission_rate >= 0 AND commission_rate <= 100', name='ck_professional_commission_rate'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_professional_clinic', 'professionals', ['clinic_id', 'is_active'], unique=False)

    op.create_table('services',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('clinic_id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(length=20), nullable=True, comment='Código interno del procedimiento (ej: TOX-FAC)'),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, comment='Duración en minutos; define end_time de la cita'),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False, comment='Precio de venta al paciente'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.CheckConstraint('duration_minutes > 0', name='ck_service_duration_positive'),
        sa.CheckConstraint('price >= 0', name='ck_service_price_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('clinic_id', 'name', name='uq_service_clinic_name')
    )
    op.create_index('idx_service_clinic', 'services', ['clinic_id'], unique=False)

    # 2. Disponibilidad: plantilla semanal + excepciones
    op.create_table('professional_schedules',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('clinic_id', sa.Uuid(), nullable=False),
        sa.Column('professional_id', sa.Uuid(), nullable=False),
        sa.Column('day_of_week', sa.SmallInteger(), nullable=False, comment='0=Lunes, 1=Martes, 2=Miércoles, 3=Jueves, 4=Viernes, 5=Sábado, 6=Domingo'),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_schedule_day_of_week'),
        sa.CheckConstraint('start_time < end_time', name='ck_schedule_block_order'),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_schedule_professional_day', 'professional_schedules', ['professional_id', 'day_of_week'], unique=False)

    op.create_table('availability_exceptions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('clinic_id', sa.Uuid(), nullable=False),
        sa.Column('professional_id', sa.Uuid(), nullable=False),
        sa.Column('date_start', sa.Date(), nullable=False, comment='Fecha inicio (si es un solo día, start == end)'),
        sa.Column('date_end', sa.Date(), nullable=False),
        sa.Column('is_full_day', sa.Boolean(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True, comment='Solo para bloqueos parciales'),
        sa.Column('end_time', sa.Time(), nullable=True, comment='Solo para bloqueos parciales'),
        sa.Column('reason', sa.String(length=500), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.CheckConstraint('date_start <= date_end', name='ck_exception_date_order'),
        sa.CheckConstraint(
            'is_full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)',
            name='ck_exception_partial_window',
        ),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_exception_professional_dates', 'availability_exceptions', ['professional_id', 'date_start', 'date_end'], unique=False)

    # 3. Citas
    op.create_table('appointments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('clinic_id', sa.Uuid(), nullable=False),
        sa.Column('patient_id', sa.Uuid(), nullable=False, comment='Referencia al directorio de pacientes (externo)'),
        sa.Column('professional_id', sa.Uuid(), nullable=False),
        sa.Column('service_id', sa.Uuid(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False, comment='start_time + duración del procedimiento'),
        sa.Column('status', appointment_status, nullable=False),
        sa.Column('room', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=500), nullable=True),
        sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('booked_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.CheckConstraint('end_time > start_time', name='ck_appointment_interval'),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id'], ),
        sa.ForeignKeyConstraint(['service_id'], ['services.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_appointment_clinic_date', 'appointments', ['clinic_id', 'start_time'], unique=False)
    op.create_index('idx_appointment_professional_date', 'appointments', ['professional_id', 'start_time'], unique=False)
    op.create_index('idx_appointment_patient', 'appointments', ['patient_id', 'start_time'], unique=False)
    op.create_index('idx_appointment_status', 'appointments', ['clinic_id', 'status'], unique=False)

    # 4. Inventario + kardex + kits
    op.create_table('inventory_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('clinic_id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False, comment='Código interno (SKU)'),
        sa.Column('name', sa.String(length=300), nullable=False),
        sa.Column('unit', item_unit, nullable=False),
        sa.Column('current_stock', sa.Numeric(precision=12, scale=3), nullable=False, comment='Stock actual'),
        sa.Column('min_stock', sa.Numeric(precision=12, scale=3), nullable=False, comment='Stock mínimo para alerta'),
        sa.Column('unit_cost', sa.Numeric(precision=12, scale=2), nullable=False, comment='Costo unitario'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.CheckConstraint('current_stock >= 0', name='ck_item_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('clinic_id', 'code', name='uq_item_clinic_code')
    )
    op.create_index('idx_item_clinic', 'inventory_items', ['clinic_id'], unique=False)
    op.create_index('idx_item_stock', 'inventory_items', ['clinic_id', 'current_stock'], unique=False)

    op.create_table('stock_movements',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('clinic_id', sa.Uuid(), nullable=False),
        sa.Column('item_id', sa.Uuid(), nullable=False, comment='Artículo afectado'),
        sa.Column('created_by', sa.Uuid(), nullable=True, comment='Usuario que registró el movimiento'),
        sa.Column('movement_type', movement_type, nullable=False),
        sa.Column('reason', movement_reason, nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False, comment='Cantidad (siempre positiva)'),
        sa.Column('stock_before', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('stock_after', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('reference', sa.String(length=200), nullable=True, comment='appointment:<id>, nro de factura, etc.'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_movement_quantity_positive'),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_stock_mov_item', 'stock_movements', ['item_id'], unique=False)
    op.create_index('idx_stock_mov_clinic_date', 'stock_movements', ['clinic_id', 'created_at'], unique=False)

    op.create_table('kit_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('clinic_id', sa.Uuid(), nullable=False),
        sa.Column('service_id', sa.Uuid(), nullable=False),
        sa.Column('item_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False, comment='Cantidad del insumo consumida por procedimiento (admite fracciones)'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_kit_quantity_positive'),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['service_id'], ['services.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('clinic_id', 'service_id', 'item_id', name='uq_kit_item_clinic_service_item')
    )
    op.create_index('idx_kit_clinic_service', 'kit_items', ['clinic_id', 'service_id'], unique=False)

    # 5. Ledger de comisiones
    op.create_table('commission_entries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('clinic_id', sa.Uuid(), nullable=False),
        sa.Column('professional_id', sa.Uuid(), nullable=False),
        sa.Column('appointment_id', sa.Uuid(), nullable=False),
        sa.Column('entry_type', commission_type, nullable=False),
        sa.Column('service_amount', sa.Numeric(precision=12, scale=2), nullable=False, comment='Precio del procedimiento al momento de la cita'),
        sa.Column('commission_rate', sa.Numeric(precision=5, scale=2), nullable=False, comment='Porcentaje aplicado'),
        sa.Column('commission_amount', sa.Numeric(precision=12, scale=2), nullable=False, comment='Monto de comisión (negativo en ajustes que descuentan)'),
        sa.Column('status', commission_status, nullable=False),
        sa.Column('period', sa.String(length=7), nullable=False, comment='Periodo YYYY-MM de la cita de origen'),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_reference', sa.String(length=200), nullable=True, comment='Referencia de pago (nro transferencia, etc.)'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.CheckConstraint(
            "(status = 'paid' AND paid_at IS NOT NULL) OR (status = 'pending' AND paid_at IS NULL)",
            name='ck_commission_paid_at_matches_status',
        ),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ),
        sa.ForeignKeyConstraint(['professional_id'], ['professionals.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'uq_commission_accrual_per_appointment', 'commission_entries', ['appointment_id'],
        unique=True,
        postgresql_where=sa.text("entry_type = 'accrual'"),
        sqlite_where=sa.text("entry_type = 'accrual'"),
    )
    op.create_index('idx_commission_entry_professional', 'commission_entries', ['professional_id', 'period'], unique=False)
    op.create_index('idx_commission_entry_status', 'commission_entries', ['clinic_id', 'status'], unique=False)

    # 6. Auditoría
    op.create_table('audit_log',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('clinic_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('entity', sa.String(length=50), nullable=False, comment='appointment, inventory_item, commission_entry, etc.'),
        sa.Column('entity_id', sa.String(length=36), nullable=False, comment='UUID del registro afectado'),
        sa.Column('action', sa.String(length=30), nullable=False, comment='create, reschedule, status_change, settle, etc.'),
        sa.Column('old_data', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=True, comment='Snapshot antes del cambio'),
        sa.Column('new_data', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=True, comment='Snapshot después del cambio'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_log_clinic_id'), 'audit_log', ['clinic_id'], unique=False)
    op.create_index(op.f('ix_audit_log_user_id'), 'audit_log', ['user_id'], unique=False)
    op.create_index(op.f('ix_audit_log_entity'), 'audit_log', ['entity'], unique=False)
    op.create_index(op.f('ix_audit_log_action'), 'audit_log', ['action'], unique=False)


def downgrade() -> None:
    op.drop_table('audit_log')
    op.drop_table('commission_entries')
    op.drop_table('kit_items')
    op.drop_table('stock_movements')
    op.drop_table('inventory_items')
    op.drop_table('appointments')
    op.drop_table('availability_exceptions')
    op.drop_table('professional_schedules')
    op.drop_table('services')
    op.drop_table('professionals')

    bind = op.get_bind()
    for enum in (commission_type, commission_status, movement_reason, movement_type,
                 item_unit, appointment_status):
        enum.drop(bind, checkfirst=True)
