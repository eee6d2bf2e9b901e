"""Create users, places and api_credentials tables

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

What:  Initial schema. Sensitive user columns hold ciphertext; the matching
       *_index columns hold lookup indexes and carry the unique constraints.

Rollback: downgrade() drops all three tables (destructive).
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
        "users",
        sa.Column("pk", sa.Uuid(), nullable=False),

        # Protected value + lookup index pairs
        sa.Column("id_index", sa.String(128), nullable=True,
                  comment="Lookup index of the user identifier"),
        sa.Column("id_user", sa.Text(), nullable=False, server_default=sa.text("''"),
                  comment="Protected user identifier"),
        sa.Column("email_index", sa.String(128), nullable=False,
                  comment="Lookup index of the email address"),
        sa.Column("email", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("name_index", sa.String(128), nullable=True),
        sa.Column("name", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("fname_index", sa.String(128), nullable=True),
        sa.Column("fname", sa.Text(), nullable=False, server_default=sa.text("''")),

        sa.Column("confirmation_token", sa.Text(), nullable=False, server_default=sa.text("''")),

        sa.Column("id_place", sa.String(128), nullable=False, server_default=sa.text("''"),
                  comment="Place currently held, empty when none"),
        sa.Column("historical", sa.JSON(), nullable=False),
        sa.Column("friend", sa.JSON(), nullable=False),

        sa.Column("photo", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("remote_day", sa.String(64), nullable=False, server_default=sa.text("''")),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),

        sa.PrimaryKeyConstraint("pk"),
        sa.UniqueConstraint("id_index"),
        sa.UniqueConstraint("email_index"),
    )
    op.create_index("idx_users_name_fname", "users", ["name_index", "fname_index"])

    op.create_table(
        "places",
        sa.Column("id_place", sa.String(128), nullable=False),
        sa.Column("using", sa.Boolean(), nullable=False, server_default=sa.false(), quote=True),
        sa.Column("id_user", sa.String(128), nullable=False, server_default=sa.text("''")),
        sa.Column("id_owner", sa.String(128), nullable=False, server_default=sa.text("''")),
        sa.Column("semi_flex", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id_place"),
    )
    op.create_index("idx_places_id_user", "places", ["id_user"])
    op.create_index("idx_places_id_owner", "places", ["id_owner"])

    op.create_table(
        "api_credentials",
        sa.Column("pk", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("api_key_hash", sa.String(64), nullable=False),
        sa.Column("creation", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("pk"),
        sa.UniqueConstraint("api_key_hash"),
    )


def downgrade() -> None:
    op.drop_table("api_credentials")
    op.drop_index("idx_places_id_owner", table_name="places")
    op.drop_index("idx_places_id_user", table_name="places")
    op.drop_table("places")
    op.drop_index("idx_users_name_fname", table_name="users")
    op.drop_table("users")
