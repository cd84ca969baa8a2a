"""initial phone tables

Revision ID: 0001_initial_phone_tables
Revises:
Create Date: 2026-10-19 12:00:00
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial_phone_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Hashed verification codes, keyed by the token handed to the client
    op.create_table(
        'phonenumber_verification',
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('timestamp', sa.Integer(), nullable=False),
        sa.Column('verification_code', sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint('token')
    )
    op.create_index(op.f('ix_phonenumber_verification_timestamp'), 'phonenumber_verification', ['timestamp'], unique=False)

    op.create_table(
        'phonenumber_settings',
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('value', sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint('name')
    )

    op.create_table(
        'phone_fields',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False),
        sa.Column('cardinality', sa.Integer(), nullable=False),
        sa.Column('unique', sa.Integer(), nullable=False),
        sa.Column('allowed', sa.String(length=10), nullable=False),
        sa.Column('countries', sa.JSON(), nullable=True),
        sa.Column('validation_number_type', sa.String(length=32), nullable=False),
        sa.Column('extension_field', sa.Boolean(), nullable=False),
        sa.Column('verify', sa.String(length=10), nullable=False),
        sa.Column('message', sa.String(length=500), nullable=False),
        sa.Column('length', sa.Integer(), nullable=False),
        sa.Column('verify_interval', sa.Integer(), nullable=False),
        sa.Column('verify_count', sa.Integer(), nullable=False),
        sa.Column('sms_interval', sa.Integer(), nullable=False),
        sa.Column('sms_count', sa.Integer(), nullable=False),
        sa.Column('tfa', sa.Boolean(), nullable=False),
        sa.Column('validation_format', sa.String(length=10), nullable=True),
        sa.Column('validation_countries', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entity_type', 'name', name='uq_phone_fields_entity_name')
    )
    op.create_index(op.f('ix_phone_fields_entity_type'), 'phone_fields', ['entity_type'], unique=False)

    op.create_table(
        'phone_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=False),
        sa.Column('field_name', sa.String(length=64), nullable=False),
        sa.Column('delta', sa.Integer(), nullable=False),
        sa.Column('phone_number', sa.String(length=16), nullable=True),
        sa.Column('local_number', sa.String(length=24), nullable=True),
        sa.Column('country_code', sa.String(length=3), nullable=True),
        sa.Column('country_iso2', sa.String(length=2), nullable=True),
        sa.Column('extension', sa.String(length=40), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('tfa', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entity_type', 'entity_id', 'field_name', 'delta', name='uq_phone_entries_item')
    )
    op.create_index(op.f('ix_phone_entries_entity_type'), 'phone_entries', ['entity_type'], unique=False)
    op.create_index(op.f('ix_phone_entries_entity_id'), 'phone_entries', ['entity_id'], unique=False)
    op.create_index(op.f('ix_phone_entries_phone_number'), 'phone_entries', ['phone_number'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_phone_entries_phone_number'), table_name='phone_entries')
    op.drop_index(op.f('ix_phone_entries_entity_id'), table_name='phone_entries')
    op.drop_index(op.f('ix_phone_entries_entity_type'), table_name='phone_entries')
    op.drop_table('phone_entries')
    op.drop_index(op.f('ix_phone_fields_entity_type'), table_name='phone_fields')
    op.drop_table('phone_fields')
    op.drop_table('phonenumber_settings')
    op.drop_index(op.f('ix_phonenumber_verification_timestamp'), table_name='phonenumber_verification')
    op.drop_table('phonenumber_verification')
