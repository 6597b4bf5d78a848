"""SQLAlchemy models for the Saúde Para Todos reference data and establishments.

Table and column names follow the legacy schema (``tipo_estado.idtipo_estado``,
``estabelecimento.tipo_natureza_idtipo_natureza`` ...); Python attributes use
shorter names (``id``, ``tipo_natureza_id``) mapped onto those columns.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from core.database import Base


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# =============================================================================
# Single-column lookups
# =============================================================================


class Componente(Base):
    __tablename__ = "componente"

    id: Mapped[int] = mapped_column("idcomponente", Integer, primary_key=True)
    descricao: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class TipoEstabelecimento(Base):
    __tablename__ = "tipo_estabelecimento"

    id: Mapped[int] = mapped_column(
        "idtipo_estabelecimento", Integer, primary_key=True
    )
    descricao: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class TipoNatureza(Base):
    __tablename__ = "tipo_natureza"

    id: Mapped[int] = mapped_column("idtipo_natureza", Integer, primary_key=True)
    descricao: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class TipoTurno(Base):
    __tablename__ = "tipo_turno"

    id: Mapped[int] = mapped_column("idtipo_turno", Integer, primary_key=True)
    descricao: Mapped[str] = mapped_column(String(45), nullable=False, unique=True)


class TipoEscolaridade(Base):
    __tablename__ = "tipo_escolaridade"

    id: Mapped[int] = mapped_column("idescolaridade", Integer, primary_key=True)
    descricao: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class TipoRaca(Base):
    __tablename__ = "tipo_raca"

    id: Mapped[int] = mapped_column("idtipo_raca", Integer, primary_key=True)
    descricao: Mapped[str] = mapped_column(String(15), nullable=False, unique=True)


class TipoPais(Base):
    __tablename__ = "tipo_pais"

    id: Mapped[int] = mapped_column("idtipo_pais", Integer, primary_key=True)
    descricao: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)


# =============================================================================
# Coded lookups
# =============================================================================


class TipoEstado(Base):
    __tablename__ = "tipo_estado"

    id: Mapped[int] = mapped_column("idtipo_estado", Integer, primary_key=True)
    codigo: Mapped[str] = mapped_column(String(5), nullable=False, unique=True)
    descricao: Mapped[str] = mapped_column(String(45), nullable=False, unique=True)


class TipoMunicipio(Base):
    __tablename__ = "tipo_municipio"
    __table_args__ = (
        UniqueConstraint(
            "descricao",
            "tipo_estado_idtipo_estado",
            name="uq_tipo_municipio_descricao_estado",
        ),
    )

    id: Mapped[int] = mapped_column("idtipo_municipio", Integer, primary_key=True)
    codigo: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    descricao: Mapped[str] = mapped_column(String(60), nullable=False)
    estado_id: Mapped[int] = mapped_column(
        "tipo_estado_idtipo_estado",
        Integer,
        ForeignKey("tipo_estado.idtipo_estado"),
        nullable=False,
        index=True,
    )

    estado: Mapped[TipoEstado] = relationship(lazy="joined")

    @property
    def estado_descricao(self) -> str | None:
        return self.estado.descricao if self.estado is not None else None


class TipoCbo(Base):
    __tablename__ = "tipo_cbo"

    id: Mapped[int] = mapped_column("idtipo_cbo", Integer, primary_key=True)
    codigo: Mapped[str] = mapped_column(String(15), nullable=False, unique=True)
    descricao: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class TipoHabilitacao(Base):
    __tablename__ = "tipo_habilitacao"

    id: Mapped[int] = mapped_column("idtipo_habilitacao", Integer, primary_key=True)
    codigo: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    descricao: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class TipoQualificacao(Base):
    __tablename__ = "tipo_qualificacao"
    __table_args__ = (
        UniqueConstraint(
            "descricao",
            "componente_idcomponente",
            name="uq_tipo_qualificacao_descricao_componente",
        ),
    )

    id: Mapped[int] = mapped_column("idtipo_qualificacao", Integer, primary_key=True)
    descricao: Mapped[str] = mapped_column(String(255), nullable=False)
    componente_id: Mapped[int] = mapped_column(
        "componente_idcomponente",
        Integer,
        ForeignKey("componente.idcomponente"),
        nullable=False,
        index=True,
    )

    componente: Mapped[Componente] = relationship(lazy="joined")

    @property
    def componente_descricao(self) -> str | None:
        return self.componente.descricao if self.componente is not None else None


# =============================================================================
# Estabelecimento aggregate
# =============================================================================


class EstabelecimentoQualificacao(Base):
    """Junction row: establishment holds a qualification."""

    __tablename__ = "estabelecimento_has_tipo_qualificacao"

    estabelecimento_id: Mapped[int] = mapped_column(
        "estabelecimento_idestabelecimento",
        Integer,
        ForeignKey("estabelecimento.idestabelecimento"),
        primary_key=True,
    )
    qualificacao_id: Mapped[int] = mapped_column(
        "tipo_qualificacao_idtipo_qualificacao",
        Integer,
        ForeignKey("tipo_qualificacao.idtipo_qualificacao"),
        primary_key=True,
        index=True,
    )


class EstabelecimentoHabilitacao(Base):
    """Junction row: establishment holds a habilitation."""

    __tablename__ = "estabelecimento_has_tipo_habilitacao"

    estabelecimento_id: Mapped[int] = mapped_column(
        "estabelecimento_idestabelecimento",
        Integer,
        ForeignKey("estabelecimento.idestabelecimento"),
        primary_key=True,
    )
    habilitacao_id: Mapped[int] = mapped_column(
        "tipo_habilitacao_idtipo_habilitacao",
        Integer,
        ForeignKey("tipo_habilitacao.idtipo_habilitacao"),
        primary_key=True,
        index=True,
    )


class Estabelecimento(TimestampMixin, Base):
    """Health establishment with its type, nature, shift and association sets.

    Association rows are written explicitly by EstabelecimentoRepository
    (set-difference reconciliation); the collections below are read-only views.
    """

    __tablename__ = "estabelecimento"
    __table_args__ = (
        CheckConstraint("ativo IN ('S', 'N')", name="ativo_flag"),
    )

    id: Mapped[int] = mapped_column("idestabelecimento", Integer, primary_key=True)
    codigo_unidade: Mapped[str | None] = mapped_column(
        String(20), nullable=True, unique=True
    )
    nome: Mapped[str] = mapped_column(String(255), nullable=False)
    cnes: Mapped[str | None] = mapped_column(String(20), nullable=True, unique=True)
    cnpj: Mapped[str | None] = mapped_column(String(20), nullable=True, unique=True)
    cidade: Mapped[str | None] = mapped_column(String(100), nullable=True)
    logradouro: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bairro: Mapped[str | None] = mapped_column(String(100), nullable=True)
    numero: Mapped[str | None] = mapped_column(String(20), nullable=True)
    latitude: Mapped[str | None] = mapped_column(String(30), nullable=True)
    longitude: Mapped[str | None] = mapped_column(String(30), nullable=True)
    ativo: Mapped[str] = mapped_column(
        String(1), nullable=False, default="N", server_default="N"
    )

    tipo_estabelecimento_id: Mapped[int] = mapped_column(
        "tipo_estabelecimento_idtipo_estabelecimento",
        Integer,
        ForeignKey("tipo_estabelecimento.idtipo_estabelecimento"),
        nullable=False,
        index=True,
    )
    tipo_natureza_id: Mapped[int] = mapped_column(
        "tipo_natureza_idtipo_natureza",
        Integer,
        ForeignKey("tipo_natureza.idtipo_natureza"),
        nullable=False,
        index=True,
    )
    tipo_turno_id: Mapped[int | None] = mapped_column(
        "tipo_turno_idtipo_turno",
        Integer,
        ForeignKey("tipo_turno.idtipo_turno"),
        nullable=True,
        index=True,
    )

    tipo_estabelecimento: Mapped[TipoEstabelecimento] = relationship(lazy="joined")
    tipo_natureza: Mapped[TipoNatureza] = relationship(lazy="joined")
    tipo_turno: Mapped[TipoTurno | None] = relationship(lazy="joined")

    habilitacoes: Mapped[list[TipoHabilitacao]] = relationship(
        secondary="estabelecimento_has_tipo_habilitacao",
        order_by=TipoHabilitacao.descricao,
        lazy="selectin",
        viewonly=True,
    )
    qualificacao_links: Mapped[list[EstabelecimentoQualificacao]] = relationship(
        lazy="selectin",
        viewonly=True,
        order_by=EstabelecimentoQualificacao.qualificacao_id,
    )

    @property
    def qualificacoes(self) -> list[int]:
        return [link.qualificacao_id for link in self.qualificacao_links]

    @property
    def tipo_estabelecimento_descricao(self) -> str | None:
        tipo = self.tipo_estabelecimento
        return tipo.descricao if tipo else None

    @property
    def tipo_natureza_descricao(self) -> str | None:
        return self.tipo_natureza.descricao if self.tipo_natureza else None

    @property
    def tipo_turno_descricao(self) -> str | None:
        return self.tipo_turno.descricao if self.tipo_turno else None
