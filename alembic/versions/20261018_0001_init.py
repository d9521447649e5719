"""init: collections, snippets, tags, memberships, positions

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _owned_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _owned_indexes(table: str) -> None:
    for column in ("user_id", "created_at", "updated_at"):
        op.create_index(f"ix_{table}_{column}", table, [column], unique=False)


def upgrade() -> None:
    op.create_table(
        "collections",
        *_owned_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "color", sa.String(length=32), nullable=False, server_default=sa.text("'#3b82f6'")
        ),
        sa.UniqueConstraint("user_id", "name", name="uq_collections_user_id_name"),
    )
    _owned_indexes("collections")

    op.create_table(
        "snippets",
        *_owned_columns(),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("forked_from", sa.String(length=36), nullable=True),
        sa.Column("fork_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    _owned_indexes("snippets")
    op.create_index("ix_snippets_is_public", "snippets", ["is_public"], unique=False)
    op.create_index("ix_snippets_forked_from", "snippets", ["forked_from"], unique=False)
    op.create_index("ix_snippets_fork_count", "snippets", ["fork_count"], unique=False)

    op.create_table(
        "tags",
        *_owned_columns(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column(
            "color", sa.String(length=32), nullable=False, server_default=sa.text("'#3b82f6'")
        ),
        sa.UniqueConstraint("user_id", "name", name="uq_tags_user_id_name"),
    )
    _owned_indexes("tags")

    op.create_table(
        "snippet_collections",
        sa.Column(
            "snippet_id",
            sa.String(length=36),
            sa.ForeignKey("snippets.id"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column(
            "collection_id",
            sa.String(length=36),
            sa.ForeignKey("collections.id"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("ordinal", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index(
        "ix_snippet_collections_collection_id",
        "snippet_collections",
        ["collection_id"],
        unique=False,
    )

    op.create_table(
        "snippet_tags",
        sa.Column(
            "snippet_id",
            sa.String(length=36),
            sa.ForeignKey("snippets.id"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column(
            "tag_id",
            sa.String(length=36),
            sa.ForeignKey("tags.id"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("ordinal", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_snippet_tags_tag_id", "snippet_tags", ["tag_id"], unique=False)

    op.create_table(
        "collection_positions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("collection_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "user_id", "collection_id", name="uq_collection_positions_user_collection"
        ),
    )
    op.create_index(
        "ix_collection_positions_user_id", "collection_positions", ["user_id"], unique=False
    )
    op.create_index(
        "ix_collection_positions_collection_id",
        "collection_positions",
        ["collection_id"],
        unique=False,
    )

    op.create_table(
        "collection_snippet_positions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("collection_id", sa.String(length=36), nullable=False),
        sa.Column("snippet_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "user_id",
            "collection_id",
            "snippet_id",
            name="uq_collection_snippet_positions_user_collection_snippet",
        ),
    )
    for column in ("user_id", "collection_id", "snippet_id"):
        op.create_index(
            f"ix_collection_snippet_positions_{column}",
            "collection_snippet_positions",
            [column],
            unique=False,
        )


def downgrade() -> None:
    for column in ("snippet_id", "collection_id", "user_id"):
        op.drop_index(
            f"ix_collection_snippet_positions_{column}", table_name="collection_snippet_positions"
        )
    op.drop_table("collection_snippet_positions")

    op.drop_index("ix_collection_positions_collection_id", table_name="collection_positions")
    op.drop_index("ix_collection_positions_user_id", table_name="collection_positions")
    op.drop_table("collection_positions")

    op.drop_index("ix_snippet_tags_tag_id", table_name="snippet_tags")
    op.drop_table("snippet_tags")

    op.drop_index("ix_snippet_collections_collection_id", table_name="snippet_collections")
    op.drop_table("snippet_collections")

    for table in ("tags", "snippets", "collections"):
        if table == "snippets":
            op.drop_index("ix_snippets_fork_count", table_name="snippets")
            op.drop_index("ix_snippets_forked_from", table_name="snippets")
            op.drop_index("ix_snippets_is_public", table_name="snippets")
        for column in ("updated_at", "created_at", "user_id"):
            op.drop_index(f"ix_{table}_{column}", table_name=table)
        op.drop_table(table)
