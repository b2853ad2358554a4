import unicodedata
from decimal import Decimal
from typing import Dict, Optional

from django.conf import settings

from vitrine.core.ports import ICalculadoraFrete


def normalizar_cidade(cidade: Optional[str]) -> str:
    """'Cúcuta ' -> 'CUCUTA'."""
    if not cidade:
        return ''
    sem_acentos = unicodedata.normalize('NFKD', cidade).encode('ascii', 'ignore').decode('ascii')
    return ' '.join(sem_acentos.upper().split())


class CalculadoraFreteTabela(ICalculadoraFrete):
    """Custo de envio por cidade, com frete grátis a partir de um subtotal mínimo."""

    def __init__(
        self,
        tabela: Optional[Dict[str, int]] = None,
        custo_padrao: Optional[Decimal] = None,
        gratis_a_partir_de: Optional[Decimal] = None
    ):
        tabela = tabela if tabela is not None else settings.FRETE_TABELA_CIDADES
        self.tabela = {normalizar_cidade(cidade): Decimal(str(valor)) for cidade, valor in tabela.items()}
        self.custo_padrao = Decimal(str(custo_padrao if custo_padrao is not None else settings.FRETE_CUSTO_PADRAO))
        self.gratis_a_partir_de = Decimal(str(
            gratis_a_partir_de if gratis_a_partir_de is not None else settings.FRETE_GRATIS_A_PARTIR_DE
        ))

    def custo(self, subtotal: Decimal, cidade: Optional[str] = None) -> Decimal:
        if self.gratis_a_partir_de and Decimal(subtotal) >= self.gratis_a_partir_de:
            return Decimal('0.00')
        valor = self.tabela.get(normalizar_cidade(cidade), self.custo_padrao)
        return valor.quantize(Decimal('0.01'))
