"""initial gamification schema

Revision ID: 20261001120000
Revises:
Create Date: 2026-10-01 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261001120000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    ]


def upgrade() -> None:
    """Create users, XP ledger and every table that awards XP."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False, server_default=''),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='student'),
        sa.Column('access_level', sa.String(), nullable=False, server_default='full'),
        sa.Column('xp', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('xp_mensal', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('level', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'user_xp_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('source', sa.String(length=32), nullable=False),
        sa.Column('source_id', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=64), nullable=False, server_default='award'),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'source', 'source_id', 'kind', name='uq_xp_award'),
    )
    op.create_index(op.f('ix_user_xp_history_id'), 'user_xp_history', ['id'], unique=False)
    op.create_index(op.f('ix_user_xp_history_user_id'), 'user_xp_history', ['user_id'], unique=False)
    op.create_index('ix_user_xp_history_created_at', 'user_xp_history', ['created_at'], unique=False)

    op.create_table(
        'quizzes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('titulo', sa.String(length=255), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=False, server_default=''),
        sa.Column('tecnologia', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('nivel', sa.String(length=32), nullable=False, server_default='iniciante'),
        sa.Column('xp', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('perguntas', sa.JSON(), nullable=False),
        sa.Column('disponivel', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_quizzes_id'), 'quizzes', ['id'], unique=False)

    op.create_table(
        'user_quiz_progress',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id'), nullable=False),
        sa.Column('completo', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('pontuacao', sa.Integer(), nullable=True),
        sa.Column('melhor_pontuacao', sa.Integer(), nullable=True),
        sa.Column('tentativas', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('respostas', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'quiz_id', name='uq_user_quiz'),
    )
    op.create_index(op.f('ix_user_quiz_progress_id'), 'user_quiz_progress', ['id'], unique=False)
    op.create_index(op.f('ix_user_quiz_progress_user_id'), 'user_quiz_progress', ['user_id'], unique=False)

    op.create_table(
        'desafios',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('titulo', sa.String(length=255), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=False),
        sa.Column('requisitos', sa.JSON(), nullable=False),
        sa.Column('tecnologia', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('nivel', sa.String(length=32), nullable=False, server_default='iniciante'),
        sa.Column('xp', sa.Integer(), nullable=False, server_default='40'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_desafios_id'), 'desafios', ['id'], unique=False)

    op.create_table(
        'user_desafio_atribuido',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('desafio_id', sa.Integer(), sa.ForeignKey('desafios.id'), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'desafio_id', name='uq_desafio_atribuido'),
    )
    op.create_index(op.f('ix_user_desafio_atribuido_id'), 'user_desafio_atribuido', ['id'], unique=False)
    op.create_index(op.f('ix_user_desafio_atribuido_user_id'), 'user_desafio_atribuido', ['user_id'], unique=False)

    op.create_table(
        'desafio_submissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('desafio_id', sa.Integer(), sa.ForeignKey('desafios.id'), nullable=False),
        sa.Column('github_url', sa.String(length=512), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pendente'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'desafio_id', name='uq_desafio_submission'),
    )
    op.create_index(op.f('ix_desafio_submissions_id'), 'desafio_submissions', ['id'], unique=False)
    op.create_index(op.f('ix_desafio_submissions_user_id'), 'desafio_submissions', ['user_id'], unique=False)

    op.create_table(
        'user_desafio_progress',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('desafio_id', sa.Integer(), sa.ForeignKey('desafios.id'), nullable=False),
        sa.Column('completo', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'desafio_id', name='uq_user_desafio_progress'),
    )
    op.create_index(op.f('ix_user_desafio_progress_id'), 'user_desafio_progress', ['id'], unique=False)
    op.create_index(op.f('ix_user_desafio_progress_user_id'), 'user_desafio_progress', ['user_id'], unique=False)

    op.create_table(
        'perguntas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('autor_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('titulo', sa.String(length=255), nullable=False),
        sa.Column('conteudo', sa.Text(), nullable=False),
        sa.Column('categoria', sa.String(length=64), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('visualizacoes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('votos', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('resolvida', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('melhor_resposta_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_perguntas_id'), 'perguntas', ['id'], unique=False)
    op.create_index(op.f('ix_perguntas_autor_id'), 'perguntas', ['autor_id'], unique=False)

    op.create_table(
        'respostas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pergunta_id', sa.Integer(), sa.ForeignKey('perguntas.id'), nullable=False),
        sa.Column('autor_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('resposta_pai_id', sa.Integer(), sa.ForeignKey('respostas.id'), nullable=True),
        sa.Column('conteudo', sa.Text(), nullable=False),
        sa.Column('melhor_resposta', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('votos', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_respostas_id'), 'respostas', ['id'], unique=False)
    op.create_index(op.f('ix_respostas_pergunta_id'), 'respostas', ['pergunta_id'], unique=False)
    op.create_index(op.f('ix_respostas_autor_id'), 'respostas', ['autor_id'], unique=False)
    op.create_index(op.f('ix_respostas_resposta_pai_id'), 'respostas', ['resposta_pai_id'], unique=False)

    op.create_table(
        'votos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('pergunta_id', sa.Integer(), sa.ForeignKey('perguntas.id'), nullable=True),
        sa.Column('resposta_id', sa.Integer(), sa.ForeignKey('respostas.id'), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'pergunta_id', name='uq_voto_pergunta'),
        sa.UniqueConstraint('user_id', 'resposta_id', name='uq_voto_resposta'),
    )
    op.create_index(op.f('ix_votos_id'), 'votos', ['id'], unique=False)
    op.create_index(op.f('ix_votos_user_id'), 'votos', ['user_id'], unique=False)

    op.create_table(
        'formularios',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('titulo', sa.String(length=255), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('perguntas', sa.JSON(), nullable=False),
        sa.Column('ativo', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_formularios_id'), 'formularios', ['id'], unique=False)

    op.create_table(
        'formulario_respostas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('formulario_id', sa.Integer(), sa.ForeignKey('formularios.id'), nullable=False),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('respostas', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_formulario_respostas_id'), 'formulario_respostas', ['id'], unique=False)
    op.create_index(op.f('ix_formulario_respostas_formulario_id'), 'formulario_respostas', ['formulario_id'], unique=False)
    op.create_index(op.f('ix_formulario_respostas_user_id'), 'formulario_respostas', ['user_id'], unique=False)

    op.create_table(
        'notificacoes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('target_user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('titulo', sa.String(length=255), nullable=False),
        sa.Column('mensagem', sa.Text(), nullable=False),
        sa.Column('tipo', sa.String(length=32), nullable=False, server_default='info'),
        sa.Column('action_url', sa.String(length=512), nullable=True),
        sa.Column('lida', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_notificacoes_id'), 'notificacoes', ['id'], unique=False)
    op.create_index(op.f('ix_notificacoes_target_user_id'), 'notificacoes', ['target_user_id'], unique=False)


def downgrade() -> None:
    """Drop everything created above, children first."""
    for table in (
        'notificacoes',
        'formulario_respostas',
        'formularios',
        'votos',
        'respostas',
        'perguntas',
        'user_desafio_progress',
        'desafio_submissions',
        'user_desafio_atribuido',
        'desafios',
        'user_quiz_progress',
        'quizzes',
        'user_xp_history',
        'users',
    ):
        op.drop_table(table)
