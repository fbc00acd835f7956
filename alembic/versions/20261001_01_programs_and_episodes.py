"""
Programs + episodes with the publication lifecycle.

- Enum types: program_type, language_code, episode_status.
- programs table (title/category/type/language, JSONB extra_info).
- episodes table (FK cascade to programs, derived status, publication date).
- Partial unique indexes for episode numbering with and without a season.
- Composite index backing the scheduler sweep (status, publication_date).
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic.
revision = "20261001_01_programs_and_episodes"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # --- Enum types ---
    program_type = postgresql.ENUM("podcast", "documentary", "series", name="program_type", create_type=False)
    language_code = postgresql.ENUM("ar", "en", name="language_code", create_type=False)
    episode_status = postgresql.ENUM("draft", "scheduled", "published", name="episode_status", create_type=False)
    for enum_type in (program_type, language_code, episode_status):
        enum_type.create(op.get_bind(), checkfirst=True)

    # --- programs ---
    op.create_table(
        "programs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", program_type, nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("language", language_code, nullable=False),
        sa.Column("cover_image_url", sa.Text(), nullable=True),
        sa.Column("extra_info", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_programs")),
        sa.CheckConstraint("length(btrim(title)) > 0", name=op.f("ck_programs_title_not_blank")),
    )
    op.create_index("ix_programs_category", "programs", ["category"], unique=False)
    op.create_index("ix_programs_type", "programs", ["type"], unique=False)

    # --- episodes ---
    op.create_table(
        "episodes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("program_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration_in_seconds", sa.Integer(), nullable=False),
        sa.Column("episode_number", sa.Integer(), nullable=False),
        sa.Column("season_number", sa.Integer(), nullable=True),
        sa.Column("extra_info", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("video_url", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("publication_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", episode_status, nullable=False, server_default=sa.text("'draft'")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_episodes")),
        sa.ForeignKeyConstraint(
            ["program_id"],
            ["programs.id"],
            name=op.f("fk_episodes_program_id_programs"),
            ondelete="CASCADE",
        ),
        sa.CheckConstraint("length(btrim(title)) > 0", name=op.f("ck_episodes_title_not_blank")),
        sa.CheckConstraint("duration_in_seconds >= 0", name=op.f("ck_episodes_duration_nonneg")),
        sa.CheckConstraint("episode_number >= 1", name=op.f("ck_episodes_episode_number_positive")),
        sa.CheckConstraint(
            "season_number IS NULL OR season_number >= 1",
            name=op.f("ck_episodes_season_number_positive"),
        ),
    )
    op.create_index(
        "uq_episodes_program_season_number",
        "episodes",
        ["program_id", "season_number", "episode_number"],
        unique=True,
        postgresql_where=sa.text("season_number IS NOT NULL"),
    )
    op.create_index(
        "uq_episodes_program_number_no_season",
        "episodes",
        ["program_id", "episode_number"],
        unique=True,
        postgresql_where=sa.text("season_number IS NULL"),
    )
    op.create_index("ix_episodes_program_id", "episodes", ["program_id"], unique=False)
    op.create_index("ix_episodes_status", "episodes", ["status"], unique=False)
    op.create_index("ix_episodes_publication_date", "episodes", ["publication_date"], unique=False)
    op.create_index("ix_episodes_status_publication_date", "episodes", ["status", "publication_date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_episodes_status_publication_date", table_name="episodes")
    op.drop_index("ix_episodes_publication_date", table_name="episodes")
    op.drop_index("ix_episodes_status", table_name="episodes")
    op.drop_index("ix_episodes_program_id", table_name="episodes")
    op.drop_index("uq_episodes_program_number_no_season", table_name="episodes")
    op.drop_index("uq_episodes_program_season_number", table_name="episodes")
    op.drop_table("episodes")

    op.drop_index("ix_programs_type", table_name="programs")
    op.drop_index("ix_programs_category", table_name="programs")
    op.drop_table("programs")

    for name in ("episode_status", "language_code", "program_type"):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
