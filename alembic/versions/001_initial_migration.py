"""Initial migration

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


PRESCRIPTION_STATUSES = ('ready', 'awaiting_payment', 'paid', 'cancelled')
MEDICATION_UNITS = ('tab', 'cap', 'ml', 'mg', 'g', 'sachet', 'bottle', 'tube')


def upgrade() -> None:
    # Identity tables are shared with the registration services
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('lastname', sa.String(length=100), nullable=True),
        sa.Column('hospital_number', sa.String(length=64), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username')
    )
    op.create_index('ix_users_hospital_number', 'users', ['hospital_number'], unique=True)

    op.create_table(
        'doctors',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('specialization', sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['id'], ['users.id'], )
    )

    op.create_table(
        'patients',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('hospital_number', sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['hospital_number'], ['users.hospital_number'], )
    )

    # Medicine catalog
    op.create_table(
        'medications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('strength', sa.String(length=64), nullable=True),
        sa.Column('unit', sa.Enum(*MEDICATION_UNITS, name='medicationunit', native_enum=False), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # Prescriptions
    op.create_table(
        'prescriptions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('doctor_id', sa.String(length=36), nullable=False),
        sa.Column('patient_id', sa.String(length=36), nullable=False),
        sa.Column(
            'status',
            sa.Enum(*PRESCRIPTION_STATUSES, name='prescriptionstatus', native_enum=False),
            nullable=False
        ),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctors.id'], ),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], )
    )
    op.create_index('ix_prescriptions_doctor_id', 'prescriptions', ['doctor_id'], unique=False)
    op.create_index('ix_prescriptions_patient_id', 'prescriptions', ['patient_id'], unique=False)
    op.create_index('ix_prescriptions_created_at', 'prescriptions', ['created_at'], unique=False)

    op.create_table(
        'prescription_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('prescription_id', sa.String(length=36), nullable=False),
        sa.Column('medication_id', sa.String(length=36), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['prescription_id'], ['prescriptions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['medication_id'], ['medications.id'], ),
        sa.CheckConstraint('amount >= 1', name='ck_prescription_items_amount_positive')
    )
    op.create_index('ix_prescription_items_prescription_id', 'prescription_items', ['prescription_id'], unique=False)


def downgrade() -> None:
    # Drop all tables in reverse order of creation
    op.drop_table('prescription_items')
    op.drop_table('prescriptions')
    op.drop_table('medications')
    op.drop_table('patients')
    op.drop_table('doctors')
    op.drop_table('users')
