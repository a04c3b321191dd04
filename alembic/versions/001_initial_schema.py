"""admin_user, roles and user_roles tables

Revision ID: 001
Revises:
Create Date: 2025-06-17 08:12:12.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == 'sqlite'

    timestamp_default = sa.text("(datetime('now'))") if is_sqlite else sa.text('now()')

    # ------------------------------------------------------------------
    # admin_user
    # ------------------------------------------------------------------
    op.create_table(
        'admin_user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=False),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='admin_user_username_key'),
        sa.UniqueConstraint('email', name='admin_user_email_key'),
        sa.UniqueConstraint('phone_number', name='admin_user_phone_number_key'),
    )
    op.create_index('ix_admin_user_username', 'admin_user', ['username'])
    op.create_index('ix_admin_user_email', 'admin_user', ['email'])

    # ------------------------------------------------------------------
    # roles (reference data)
    # ------------------------------------------------------------------
    roles = op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='roles_name_key'),
    )
    op.create_index('ix_roles_name', 'roles', ['name'])

    # ------------------------------------------------------------------
    # user_roles
    # ------------------------------------------------------------------
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['user_id'], ['admin_user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'role_id'),
    )
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'])
    op.create_index('ix_user_roles_role_id', 'user_roles', ['role_id'])

    op.bulk_insert(roles, [
        {'name': 'super_admin', 'display_name': 'Super administrator',
         'description': 'Full access, including administrator management'},
        {'name': 'content_admin', 'display_name': 'Content administrator',
         'description': 'Manages audio content'},
        {'name': 'user_admin', 'display_name': 'User administrator',
         'description': 'Manages end-user accounts'},
    ])


def downgrade() -> None:
    op.drop_index('ix_user_roles_role_id', table_name='user_roles')
    op.drop_index('ix_user_roles_user_id', table_name='user_roles')
    op.drop_table('user_roles')

    op.drop_index('ix_roles_name', table_name='roles')
    op.drop_table('roles')

    op.drop_index('ix_admin_user_email', table_name='admin_user')
    op.drop_index('ix_admin_user_username', table_name='admin_user')
    op.drop_table('admin_user')
