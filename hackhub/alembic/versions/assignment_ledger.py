"""
Alembic migration: Hackathon, task, ledger, submission and audit tables
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = 'assignment_ledger'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('role', sa.Enum('admin', 'judge', 'participant', name='userrole'), nullable=False),
        sa.Column('skills', sa.JSON(), nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'hackathons',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('assignment_start_date', sa.DateTime(), nullable=False),
        sa.Column('assignment_end_date', sa.DateTime(), nullable=False),
        sa.Column('submission_deadline', sa.DateTime(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('draft', 'active', 'completed', 'cancelled', name='hackathonstatus'),
            nullable=False
        ),
        sa.Column('max_participants', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('tasks_per_participant', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_hackathons_status', 'hackathons', ['status'])

    op.create_table(
        'hackathon_participants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('hackathon_id', sa.Integer(), sa.ForeignKey('hackathons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('enrolled_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('hackathon_id', 'user_id', name='uq_hackathon_participant'),
    )

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('hackathon_id', sa.Integer(), sa.ForeignKey('hackathons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('difficulty', sa.Enum('easy', 'medium', 'hard', name='taskdifficulty'), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('assigned_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_assigned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('assigned_count >= 0', name='ck_task_assigned_count_non_negative'),
    )
    op.create_index('idx_tasks_hackathon', 'tasks', ['hackathon_id'])
    op.create_index('idx_tasks_hackathon_assigned', 'tasks', ['hackathon_id', 'is_assigned'])

    op.create_table(
        'task_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('hackathon_id', sa.Integer(), sa.ForeignKey('hackathons.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('tasks.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('participant_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column(
            'assignment_method',
            sa.Enum('manual', 'random', 'smart', name='assignmentmethod'),
            nullable=False
        ),
        sa.Column('assigned_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('assigned_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column(
            'status',
            sa.Enum('assigned', 'submitted', 'late', 'evaluated', name='assignmentstatus'),
            nullable=False
        ),
        sa.Column('match_score', sa.Float(), nullable=True),
        sa.Column('submission_id', sa.Integer(), nullable=True),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.UniqueConstraint(
            'hackathon_id', 'task_id', 'participant_id',
            name='uq_assignment_hackathon_task_participant'
        ),
        sa.CheckConstraint(
            'score IS NULL OR (score >= 0 AND score <= 100)',
            name='ck_assignment_score_range'
        ),
    )
    op.create_index('idx_assignments_hackathon_participant', 'task_assignments', ['hackathon_id', 'participant_id'])
    op.create_index('idx_assignments_task', 'task_assignments', ['task_id'])

    op.create_table(
        'submissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'assignment_id', sa.Integer(),
            sa.ForeignKey('task_assignments.id', ondelete='RESTRICT'),
            nullable=False, unique=True
        ),
        sa.Column('participant_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('tasks.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('hackathon_id', sa.Integer(), sa.ForeignKey('hackathons.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('submission_url', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('is_late', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('evaluated_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('evaluated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_submissions_participant_hackathon', 'submissions', ['participant_id', 'hackathon_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'action',
            sa.Enum(
                'task_assigned', 'task_reassigned', 'task_unassigned',
                'submission_created', 'submission_evaluated',
                name='auditaction'
            ),
            nullable=False
        ),
        sa.Column('performed_by', sa.Integer(), nullable=False),
        sa.Column('target_user_id', sa.Integer(), nullable=True),
        sa.Column('hackathon_id', sa.Integer(), nullable=True),
        sa.Column('task_id', sa.Integer(), nullable=True),
        sa.Column('assignment_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_audit_performed_by_timestamp', 'audit_logs', ['performed_by', 'timestamp'])
    op.create_index('idx_audit_hackathon_action', 'audit_logs', ['hackathon_id', 'action'])


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('submissions')
    op.drop_table('task_assignments')
    op.drop_table('tasks')
    op.drop_table('hackathon_participants')
    op.drop_table('hackathons')
    op.drop_table('users')
