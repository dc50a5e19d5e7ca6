"""Reasons seeded into a fresh database."""

from .records import Reason

SEED_TIMESTAMP = "2025-05-25T13:02:00Z"

DEFAULT_REASONS = [
    Reason(id="1", code="01", description="Produto Vencido"),
    Reason(id="2", code="02", description="Produto Danificado"),
    Reason(id="3", code="03", description="Degustação no Depósito"),
    Reason(id="4", code="04", description="Degustação na Loja"),
    Reason(id="5", code="05", description="Furto Interno"),
    Reason(id="6", code="06", description="Furto na Área de Vendas"),
    Reason(id="7", code="07", description="Alimento Produzido para o Refeitório"),
    Reason(id="8", code="08", description="Furto Não Recuperado"),
]
