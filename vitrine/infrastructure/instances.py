"""
Módulo de inicialização dos repositórios e gateways.
Deve ser importado somente depois que o Django estiver configurado.
"""

from .frete import CalculadoraFreteTabela
from .gateways import EmailNotificador, WompiGateway
from .repositories import (
    CarrinhoServiceDjango as CarrinhoService,
    IntencaoCheckoutRepositoryDjango as IntencaoCheckoutRepository,
    LedgerPedidosDjango as LedgerPedidos,
    PerfilCompradorServiceDjango as PerfilCompradorService,
    UnidadeDeTrabalhoDjango as UnidadeDeTrabalho,
)

# Instâncias globais (sem estado próprio; os modelos são resolvidos sob demanda)
intencao_repo = IntencaoCheckoutRepository()
ledger_pedidos = LedgerPedidos()
carrinho_service = CarrinhoService()
perfil_service = PerfilCompradorService()
unidade_trabalho = UnidadeDeTrabalho()
notificador = EmailNotificador()


def get_calculadora_frete() -> CalculadoraFreteTabela:
    return CalculadoraFreteTabela()


def get_gateway_pagamento() -> WompiGateway:
    return WompiGateway()
