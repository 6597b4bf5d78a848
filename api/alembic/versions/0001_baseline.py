"""baseline schema

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Lookup tables, establishments and their qualification/habilitation
junction tables.
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_baseline"
down_revision = None
branch_labels = None
depends_on = None

# (table, primary key column, descricao length)
_DESCRICAO_LOOKUPS = (
    ("componente", "idcomponente", 100),
    ("tipo_estabelecimento", "idtipo_estabelecimento", 100),
    ("tipo_natureza", "idtipo_natureza", 100),
    ("tipo_turno", "idtipo_turno", 45),
    ("tipo_escolaridade", "idescolaridade", 100),
    ("tipo_raca", "idtipo_raca", 15),
    ("tipo_pais", "idtipo_pais", 50),
)


def upgrade() -> None:
    for table, pk, length in _DESCRICAO_LOOKUPS:
        op.create_table(
            table,
            sa.Column(pk, sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("descricao", sa.String(length), nullable=False),
            sa.PrimaryKeyConstraint(pk, name=f"pk_{table}"),
            sa.UniqueConstraint("descricao", name=f"uq_{table}_descricao"),
        )

    # Coded lookups
    op.create_table(
        "tipo_estado",
        sa.Column("idtipo_estado", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("codigo", sa.String(5), nullable=False),
        sa.Column("descricao", sa.String(45), nullable=False),
        sa.PrimaryKeyConstraint("idtipo_estado", name="pk_tipo_estado"),
        sa.UniqueConstraint("codigo", name="uq_tipo_estado_codigo"),
        sa.UniqueConstraint("descricao", name="uq_tipo_estado_descricao"),
    )

    op.create_table(
        "tipo_municipio",
        sa.Column(
            "idtipo_municipio", sa.Integer(), autoincrement=True, nullable=False
        ),
        sa.Column("codigo", sa.String(10), nullable=False),
        sa.Column("descricao", sa.String(60), nullable=False),
        sa.Column("tipo_estado_idtipo_estado", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("idtipo_municipio", name="pk_tipo_municipio"),
        sa.ForeignKeyConstraint(
            ["tipo_estado_idtipo_estado"],
            ["tipo_estado.idtipo_estado"],
            name="fk_tipo_municipio_estado",
        ),
        sa.UniqueConstraint("codigo", name="uq_tipo_municipio_codigo"),
        sa.UniqueConstraint(
            "descricao",
            "tipo_estado_idtipo_estado",
            name="uq_tipo_municipio_descricao_estado",
        ),
    )
    op.create_index(
        "ix_tipo_municipio_estado",
        "tipo_municipio",
        ["tipo_estado_idtipo_estado"],
    )

    op.create_table(
        "tipo_cbo",
        sa.Column("idtipo_cbo", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("codigo", sa.String(15), nullable=False),
        sa.Column("descricao", sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint("idtipo_cbo", name="pk_tipo_cbo"),
        sa.UniqueConstraint("codigo", name="uq_tipo_cbo_codigo"),
        sa.UniqueConstraint("descricao", name="uq_tipo_cbo_descricao"),
    )

    op.create_table(
        "tipo_habilitacao",
        sa.Column(
            "idtipo_habilitacao", sa.Integer(), autoincrement=True, nullable=False
        ),
        sa.Column("codigo", sa.String(20), nullable=False),
        sa.Column("descricao", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("idtipo_habilitacao", name="pk_tipo_habilitacao"),
        sa.UniqueConstraint("codigo", name="uq_tipo_habilitacao_codigo"),
        sa.UniqueConstraint("descricao", name="uq_tipo_habilitacao_descricao"),
    )

    op.create_table(
        "tipo_qualificacao",
        sa.Column(
            "idtipo_qualificacao", sa.Integer(), autoincrement=True, nullable=False
        ),
        sa.Column("descricao", sa.String(255), nullable=False),
        sa.Column("componente_idcomponente", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("idtipo_qualificacao", name="pk_tipo_qualificacao"),
        sa.ForeignKeyConstraint(
            ["componente_idcomponente"],
            ["componente.idcomponente"],
            name="fk_tipo_qualificacao_componente",
        ),
        sa.UniqueConstraint(
            "descricao",
            "componente_idcomponente",
            name="uq_tipo_qualificacao_descricao_componente",
        ),
    )
    op.create_index(
        "ix_tipo_qualificacao_componente",
        "tipo_qualificacao",
        ["componente_idcomponente"],
    )

    # Establishments
    op.create_table(
        "estabelecimento",
        sa.Column(
            "idestabelecimento", sa.Integer(), autoincrement=True, nullable=False
        ),
        sa.Column("codigo_unidade", sa.String(20), nullable=True),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("cnes", sa.String(20), nullable=True),
        sa.Column("cnpj", sa.String(20), nullable=True),
        sa.Column("cidade", sa.String(100), nullable=True),
        sa.Column("logradouro", sa.String(255), nullable=True),
        sa.Column("bairro", sa.String(100), nullable=True),
        sa.Column("numero", sa.String(20), nullable=True),
        sa.Column("latitude", sa.String(30), nullable=True),
        sa.Column("longitude", sa.String(30), nullable=True),
        sa.Column("ativo", sa.String(1), nullable=False, server_default="N"),
        sa.Column(
            "tipo_estabelecimento_idtipo_estabelecimento",
            sa.Integer(),
            nullable=False,
        ),
        sa.Column("tipo_natureza_idtipo_natureza", sa.Integer(), nullable=False),
        sa.Column("tipo_turno_idtipo_turno", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("idestabelecimento", name="pk_estabelecimento"),
        sa.ForeignKeyConstraint(
            ["tipo_estabelecimento_idtipo_estabelecimento"],
            ["tipo_estabelecimento.idtipo_estabelecimento"],
            name="fk_estabelecimento_tipo_estabelecimento",
        ),
        sa.ForeignKeyConstraint(
            ["tipo_natureza_idtipo_natureza"],
            ["tipo_natureza.idtipo_natureza"],
            name="fk_estabelecimento_tipo_natureza",
        ),
        sa.ForeignKeyConstraint(
            ["tipo_turno_idtipo_turno"],
            ["tipo_turno.idtipo_turno"],
            name="fk_estabelecimento_tipo_turno",
        ),
        sa.UniqueConstraint("codigo_unidade", name="uq_estabelecimento_codigo_unidade"),
        sa.UniqueConstraint("cnes", name="uq_estabelecimento_cnes"),
        sa.UniqueConstraint("cnpj", name="uq_estabelecimento_cnpj"),
        sa.CheckConstraint(
            "ativo IN ('S', 'N')", name="ck_estabelecimento_ativo_flag"
        ),
    )
    op.create_index(
        "ix_estabelecimento_tipo_estabelecimento",
        "estabelecimento",
        ["tipo_estabelecimento_idtipo_estabelecimento"],
    )
    op.create_index(
        "ix_estabelecimento_tipo_natureza",
        "estabelecimento",
        ["tipo_natureza_idtipo_natureza"],
    )
    op.create_index(
        "ix_estabelecimento_tipo_turno",
        "estabelecimento",
        ["tipo_turno_idtipo_turno"],
    )

    # Association sets: composite PK makes each pair unique
    op.create_table(
        "estabelecimento_has_tipo_qualificacao",
        sa.Column("estabelecimento_idestabelecimento", sa.Integer(), nullable=False),
        sa.Column(
            "tipo_qualificacao_idtipo_qualificacao", sa.Integer(), nullable=False
        ),
        sa.PrimaryKeyConstraint(
            "estabelecimento_idestabelecimento",
            "tipo_qualificacao_idtipo_qualificacao",
            name="pk_estabelecimento_has_tipo_qualificacao",
        ),
        sa.ForeignKeyConstraint(
            ["estabelecimento_idestabelecimento"],
            ["estabelecimento.idestabelecimento"],
            name="fk_est_qualificacao_estabelecimento",
        ),
        sa.ForeignKeyConstraint(
            ["tipo_qualificacao_idtipo_qualificacao"],
            ["tipo_qualificacao.idtipo_qualificacao"],
            name="fk_est_qualificacao_tipo_qualificacao",
        ),
    )
    op.create_index(
        "ix_est_qualificacao_tipo_qualificacao",
        "estabelecimento_has_tipo_qualificacao",
        ["tipo_qualificacao_idtipo_qualificacao"],
    )

    op.create_table(
        "estabelecimento_has_tipo_habilitacao",
        sa.Column("estabelecimento_idestabelecimento", sa.Integer(), nullable=False),
        sa.Column(
            "tipo_habilitacao_idtipo_habilitacao", sa.Integer(), nullable=False
        ),
        sa.PrimaryKeyConstraint(
            "estabelecimento_idestabelecimento",
            "tipo_habilitacao_idtipo_habilitacao",
            name="pk_estabelecimento_has_tipo_habilitacao",
        ),
        sa.ForeignKeyConstraint(
            ["estabelecimento_idestabelecimento"],
            ["estabelecimento.idestabelecimento"],
            name="fk_est_habilitacao_estabelecimento",
        ),
        sa.ForeignKeyConstraint(
            ["tipo_habilitacao_idtipo_habilitacao"],
            ["tipo_habilitacao.idtipo_habilitacao"],
            name="fk_est_habilitacao_tipo_habilitacao",
        ),
    )
    op.create_index(
        "ix_est_habilitacao_tipo_habilitacao",
        "estabelecimento_has_tipo_habilitacao",
        ["tipo_habilitacao_idtipo_habilitacao"],
    )


def downgrade() -> None:
    op.drop_table("estabelecimento_has_tipo_habilitacao")
    op.drop_table("estabelecimento_has_tipo_qualificacao")
    op.drop_table("estabelecimento")
    op.drop_table("tipo_qualificacao")
    op.drop_table("tipo_habilitacao")
    op.drop_table("tipo_cbo")
    op.drop_table("tipo_municipio")
    op.drop_table("tipo_estado")
    for table, _pk, _length in reversed(_DESCRICAO_LOOKUPS):
        op.drop_table(table)
