"""initial tables: users, schedules, assignments, homeworks and their tasks

Revision ID: 0001
Revises:
Create Date: 2026-10-01

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('is_active_flag', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table('schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('subject_code', sa.String(50), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('tutor_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('meeting_url', sa.String(500), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='upcoming'),
        sa.Column('report_url', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_schedules_student_id', 'schedules', ['student_id'])
    op.create_index('ix_schedules_tutor_id', 'schedules', ['tutor_id'])
    # выборки движка: status = ? AND start_time <= now
    op.create_index('ix_schedules_status_start', 'schedules', ['status', 'start_time'])

    op.create_table('assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('schedule_id', sa.Integer(), sa.ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('subject', sa.String(100), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_assignments_schedule_id', 'assignments', ['schedule_id'])

    op.create_table('assignment_tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('assignment_id', sa.Integer(), sa.ForeignKey('assignments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('estimated_time', sa.Integer(), nullable=False),
        sa.Column('actual_time', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('assignment_url', sa.String(500), nullable=True),
        sa.Column('answer_url', sa.String(500), nullable=True),
        sa.Column('solution_url', sa.String(500), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
    )
    op.create_index('ix_assignment_tasks_assignment_id', 'assignment_tasks', ['assignment_id'])

    op.create_table('homeworks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('schedule_id', sa.Integer(), sa.ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('subject', sa.String(100), nullable=True),
        sa.Column('difficulty', sa.String(16), nullable=True),
        sa.Column('deadline', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='in-progress'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_homeworks_student_id', 'homeworks', ['student_id'])
    op.create_index('ix_homeworks_schedule_id', 'homeworks', ['schedule_id'])
    op.create_index('ix_homeworks_deadline', 'homeworks', ['deadline'])

    op.create_table('homework_tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('homework_id', sa.Integer(), sa.ForeignKey('homeworks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='in-progress'),
        sa.Column('assignment_url', sa.String(500), nullable=True),
        sa.Column('answer_url', sa.String(500), nullable=True),
        sa.Column('solution_url', sa.String(500), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_homework_tasks_homework_id', 'homework_tasks', ['homework_id'])

def downgrade():
    op.drop_table('homework_tasks')
    op.drop_table('homeworks')
    op.drop_table('assignment_tasks')
    op.drop_table('assignments')
    op.drop_index('ix_schedules_status_start', table_name='schedules')
    op.drop_table('schedules')
    op.drop_table('users')
