"""Initial case service tables

Revision ID: 202610190000
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '202610190000'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ------------------------------
    # Organizational directory
    # ------------------------------
    op.create_table(
        'provinces',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'buildings',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('province_id', sa.String(36), sa.ForeignKey('provinces.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'departments',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('building_id', sa.String(36), sa.ForeignKey('buildings.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('department_id', sa.String(36), sa.ForeignKey('departments.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'user_roles',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('role', sa.String(50), nullable=False, index=True),
        sa.UniqueConstraint('user_id', 'role', name='uq_user_roles_user_role'),
    )

    # ------------------------------
    # Cases
    # ------------------------------
    op.create_table(
        'incidents',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('incident_number', sa.String(64), nullable=False, unique=True, index=True),
        sa.Column('type', sa.String(64), nullable=False),
        sa.Column('category', sa.String(128), nullable=False, index=True),
        sa.Column('severity', sa.String(64), nullable=False, index=True),
        sa.Column('status', sa.String(40), nullable=False, index=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('reported_by_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('building_id', sa.String(36), sa.ForeignKey('buildings.id'), nullable=False, index=True),
        sa.Column('department_id', sa.String(36), sa.ForeignKey('departments.id'), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('immediate_actions', sa.Text(), nullable=True),
        sa.Column('other_actions', sa.Text(), nullable=True),
        sa.Column('people_impacted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_escalated', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column('escalated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('escalation_reason', sa.Text(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True, index=True),
    )

    op.create_table(
        'incident_assignments',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('incident_id', sa.String(36), sa.ForeignKey('incidents.id'), nullable=False),
        sa.Column('assigned_to_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('assigned_by_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.UniqueConstraint('incident_id', 'sequence', name='uq_incident_assignments_sequence'),
    )
    op.create_index(
        'ix_incident_assignments_incident_assigned_at',
        'incident_assignments',
        ['incident_id', 'assigned_at'],
    )

    op.create_table(
        'incident_status_logs',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('incident_id', sa.String(36), sa.ForeignKey('incidents.id'), nullable=False),
        sa.Column('old_status', sa.String(40), nullable=False),
        sa.Column('new_status', sa.String(40), nullable=False),
        sa.Column('comments', sa.Text(), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.UniqueConstraint('incident_id', 'sequence', name='uq_incident_status_logs_sequence'),
    )
    op.create_index(
        'ix_incident_status_logs_incident_changed_at',
        'incident_status_logs',
        ['incident_id', 'changed_at'],
    )

    op.create_table(
        'incident_media',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('incident_id', sa.String(36), sa.ForeignKey('incidents.id'), nullable=False, index=True),
        sa.Column('file_url', sa.Text(), nullable=False),
        sa.Column('file_type', sa.String(128), nullable=False),
        sa.Column('uploader_role', sa.String(50), nullable=True),
        sa.Column('uploaded_by_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'incident_comments',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('incident_id', sa.String(36), sa.ForeignKey('incidents.id'), nullable=False, index=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'incident_impacted_people',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('incident_id', sa.String(36), sa.ForeignKey('incidents.id'), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(64), nullable=True),
    )

    # ------------------------------
    # SLA
    # ------------------------------
    op.create_table(
        'sla_rules',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('category', sa.String(128), nullable=False),
        sa.Column('severity', sa.String(64), nullable=False),
        sa.Column('response_minutes', sa.Integer(), nullable=False),
        sa.Column('resolution_minutes', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('category', 'severity', name='uq_sla_rules_category_severity'),
    )

    op.create_table(
        'incident_sla_tracking',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('incident_id', sa.String(36), sa.ForeignKey('incidents.id'), nullable=False, unique=True),
        sa.Column('sla_id', sa.String(36), sa.ForeignKey('sla_rules.id'), nullable=False, index=True),
        sa.Column('response_minutes', sa.Integer(), nullable=False),
        sa.Column('resolution_minutes', sa.Integer(), nullable=False),
        sa.Column('response_due_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('resolution_due_at', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('response_breached', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('resolution_breached', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    # ------------------------------
    # Notifications
    # ------------------------------
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True, nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('module', sa.String(50), nullable=False),
        sa.Column('reference_id', sa.String(36), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_notifications_user_created', 'notifications', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_notifications_user_created', table_name='notifications')
    op.drop_table('notifications')
    op.drop_table('incident_sla_tracking')
    op.drop_table('sla_rules')
    op.drop_table('incident_impacted_people')
    op.drop_table('incident_comments')
    op.drop_table('incident_media')
    op.drop_index('ix_incident_status_logs_incident_changed_at', table_name='incident_status_logs')
    op.drop_table('incident_status_logs')
    op.drop_index('ix_incident_assignments_incident_assigned_at', table_name='incident_assignments')
    op.drop_table('incident_assignments')
    op.drop_table('incidents')
    op.drop_table('user_roles')
    op.drop_table('users')
    op.drop_table('departments')
    op.drop_table('buildings')
    op.drop_table('provinces')
