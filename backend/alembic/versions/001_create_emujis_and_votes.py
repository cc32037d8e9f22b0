"""Create emujis and votes tables

Revision ID: 001
Revises: None
Create Date: 2018-11-20 00:00:00.000000+00:00

What:  Creates `emujis` (song picks, read by GET routes) and `votes`
       (written by POST / when vote recording is enabled).

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "emujis",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("emoji", sa.String(32), nullable=False),
        sa.Column("artist", sa.String(255), nullable=True),
        sa.Column("song", sa.String(255), nullable=True),
        sa.Column(
            "spotify_uri",
            sa.String(255),
            nullable=False,
            comment="Spotify track URI, e.g. spotify:track:<id>",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    # GET /{spotify_uri} filters on this column
    op.create_index("idx_emujis_spotify_uri", "emujis", ["spotify_uri"])

    op.create_table(
        "votes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("emoji", sa.String(32), nullable=False),
        sa.Column("artist", sa.String(255), nullable=True),
        sa.Column("song", sa.String(255), nullable=True),
        sa.Column("spotify_uri", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("votes")
    op.drop_index("idx_emujis_spotify_uri", table_name="emujis")
    op.drop_table("emujis")
