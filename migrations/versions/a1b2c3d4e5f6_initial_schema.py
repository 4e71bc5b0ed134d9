"""initial schema: managers, login ledger, ip blacklist, user phones

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'managers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('login', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('managers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_managers_login'), ['login'], unique=True)

    op.create_table(
        'login_attempts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ip', sa.String(length=64), nullable=False),
        sa.Column('device', sa.String(length=255), nullable=False),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('fail_count', sa.Integer(), nullable=False),
        sa.Column('last_attempt_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('fail_count >= 0', name='ck_login_attempt_fail_count'),
        sa.ForeignKeyConstraint(['manager_id'], ['managers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ip', 'device', name='uq_login_attempt_ip_device')
    )
    with op.batch_alter_table('login_attempts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_login_attempts_ip'), ['ip'], unique=False)
        batch_op.create_index(batch_op.f('ix_login_attempts_manager_id'), ['manager_id'], unique=False)

    op.create_table(
        'ip_blacklist',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ip', sa.String(length=64), nullable=False),
        sa.Column('reason', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('ip_blacklist', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_ip_blacklist_ip'), ['ip'], unique=True)

    op.create_table(
        'user_phones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=False),
        sa.Column('date_of_send', sa.DateTime(), nullable=True),
        sa.Column('information_about_user', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('user_phones', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_phones_phone'), ['phone'], unique=True)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=80), nullable=False),
        sa.Column('entity', sa.String(length=80), nullable=True),
        sa.Column('entity_id', sa.String(length=80), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('metadata_json', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade():
    op.drop_table('audit_logs')

    with op.batch_alter_table('user_phones', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_user_phones_phone'))
    op.drop_table('user_phones')

    with op.batch_alter_table('ip_blacklist', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_ip_blacklist_ip'))
    op.drop_table('ip_blacklist')

    with op.batch_alter_table('login_attempts', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_login_attempts_manager_id'))
        batch_op.drop_index(batch_op.f('ix_login_attempts_ip'))
    op.drop_table('login_attempts')

    with op.batch_alter_table('managers', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_managers_login'))
    op.drop_table('managers')
