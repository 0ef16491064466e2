"""Esquema inicial: users, doctors, horario semanal, días libres, patients, appointments

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    userrole_enum = sa.Enum('PATIENT', 'DOCTOR', 'ADMIN', name='userrole')
    doctorstatus_enum = sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='doctorstatus')
    weekday_enum = sa.Enum(
        'MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY', 'SATURDAY', 'SUNDAY',
        name='weekday',
    )
    appointmentstatus_enum = sa.Enum(
        'PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED',
        name='appointmentstatus',
    )

    # 1. users
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', userrole_enum, nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # 2. doctors
    op.create_table(
        'doctors',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('specialization', sa.String(length=100), nullable=False),
        sa.Column('experience', sa.Integer(), nullable=False, comment='Años de experiencia'),
        sa.Column('consultation_fee', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('clinic_address', sa.String(length=500), nullable=False),
        sa.Column('is_approved', sa.Boolean(), nullable=False),
        sa.Column('status', doctorstatus_enum, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_doctors_user_id', 'doctors', ['user_id'], unique=True)
    op.create_index('ix_doctors_specialization', 'doctors', ['specialization'])

    # 3. doctor_weekly_slots
    op.create_table(
        'doctor_weekly_slots',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('doctor_id', sa.Uuid(), nullable=False),
        sa.Column('day', weekday_enum, nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column(
            'max_patients_per_day', sa.Integer(), nullable=False,
            comment='Máximo de citas activas (pending + confirmed) por fecha',
        ),
        sa.Column('position', sa.SmallInteger(), nullable=False),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_weekly_slot_doctor_day', 'doctor_weekly_slots', ['doctor_id', 'day'])

    # 4. doctor_days_off
    op.create_table(
        'doctor_days_off',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('doctor_id', sa.Uuid(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('doctor_id', 'date', name='uq_doctor_day_off'),
    )

    # 5. patients
    op.create_table(
        'patients',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('gender', sa.String(length=20), nullable=False, comment='male, female, other'),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=False),
        sa.Column('medical_history', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_patients_user_id', 'patients', ['user_id'], unique=True)

    # 6. appointments
    op.create_table(
        'appointments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('doctor_id', sa.Uuid(), nullable=False),
        sa.Column('patient_id', sa.Uuid(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=True, comment='Copiado del bloque semanal al reservar'),
        sa.Column('end_time', sa.String(length=5), nullable=True),
        sa.Column('status', appointmentstatus_enum, nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctors.id']),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_appointment_doctor_date', 'appointments', ['doctor_id', 'date', 'status'])
    op.create_index('idx_appointment_patient', 'appointments', ['patient_id', 'date'])
    op.create_index(
        'uq_appointment_active_booking',
        'appointments',
        ['doctor_id', 'patient_id', 'date'],
        unique=True,
        postgresql_where=sa.text("status IN ('PENDING', 'CONFIRMED')"),
    )


def downgrade() -> None:
    op.drop_index('uq_appointment_active_booking', table_name='appointments')
    op.drop_index('idx_appointment_patient', table_name='appointments')
    op.drop_index('idx_appointment_doctor_date', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('ix_patients_user_id', table_name='patients')
    op.drop_table('patients')
    op.drop_table('doctor_days_off')
    op.drop_index('idx_weekly_slot_doctor_day', table_name='doctor_weekly_slots')
    op.drop_table('doctor_weekly_slots')
    op.drop_index('ix_doctors_specialization', table_name='doctors')
    op.drop_index('ix_doctors_user_id', table_name='doctors')
    op.drop_table('doctors')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    sa.Enum(name='appointmentstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='weekday').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='doctorstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
