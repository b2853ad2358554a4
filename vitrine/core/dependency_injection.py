# vitrine/core/dependency_injection.py
"""
Módulo de Injeção de Dependência (DI).
Responsável por instanciar os Use Cases com suas dependências de Repositórios/Gateways
concretos da camada de Infraestrutura. As configurações são lidas a cada chamada
para respeitar override_settings nos testes.
"""
import logging

from django.conf import settings

from vitrine.infrastructure import instances
from .checkout_url import ConfiguracaoCheckout
from .liquidacao import CoordenadorLiquidacao
from .reconciliacao import ReconciliarCheckoutsUseCase
from .use_cases import (
    CancelarPedidoUseCase,
    ConsultarPedidoPorReferenciaUseCase,
    ConsultarTempoRestanteUseCase,
    ConsultarTransacaoUseCase,
    CriarCheckoutUseCase,
    ProcessarWebhookUseCase,
)

logger = logging.getLogger(__name__)


def get_configuracao_checkout() -> ConfiguracaoCheckout:
    return ConfiguracaoCheckout(
        chave_publica=settings.WOMPI_CHAVE_PUBLICA,
        segredo_integridade=settings.WOMPI_SEGREDO_INTEGRIDADE,
        moeda=settings.PAGAMENTOS_MOEDA,
        url_base=settings.WOMPI_URL_CHECKOUT,
        url_redirecionamento=settings.PAGAMENTOS_URL_REDIRECIONAMENTO or None,
        valor_minimo_centavos=settings.PAGAMENTOS_VALOR_MINIMO_CENTAVOS,
    )


def get_coordenador_liquidacao() -> CoordenadorLiquidacao:
    return CoordenadorLiquidacao(
        intencao_repo=instances.intencao_repo,
        ledger=instances.ledger_pedidos,
        unidade_trabalho=instances.unidade_trabalho,
        notificador=instances.notificador,
    )


# ====================================================================
# Use Cases de Checkout
# ====================================================================

def get_criar_checkout_use_case() -> CriarCheckoutUseCase:
    return CriarCheckoutUseCase(
        carrinho_service=instances.carrinho_service,
        perfil_service=instances.perfil_service,
        calculadora_frete=instances.get_calculadora_frete(),
        intencao_repo=instances.intencao_repo,
        config=get_configuracao_checkout(),
        expiracao_minutos=settings.PAGAMENTOS_EXPIRACAO_MINUTOS,
    )

def get_consultar_tempo_restante_use_case() -> ConsultarTempoRestanteUseCase:
    return ConsultarTempoRestanteUseCase(instances.intencao_repo)

def get_consultar_pedido_por_referencia_use_case() -> ConsultarPedidoPorReferenciaUseCase:
    return ConsultarPedidoPorReferenciaUseCase(instances.intencao_repo, instances.ledger_pedidos)


# ====================================================================
# Use Cases de Liquidação
# ====================================================================

def get_processar_webhook_use_case() -> ProcessarWebhookUseCase:
    return ProcessarWebhookUseCase(
        intencao_repo=instances.intencao_repo,
        coordenador=get_coordenador_liquidacao(),
        segredo_eventos=settings.WOMPI_SEGREDO_EVENTOS,
        ignorar_assinatura=ignorar_assinatura_webhook(),
    )

def get_consultar_transacao_use_case() -> ConsultarTransacaoUseCase:
    return ConsultarTransacaoUseCase(
        gateway=instances.get_gateway_pagamento(),
        intencao_repo=instances.intencao_repo,
        coordenador=get_coordenador_liquidacao(),
    )

def get_reconciliar_checkouts_use_case() -> ReconciliarCheckoutsUseCase:
    return ReconciliarCheckoutsUseCase(
        intencao_repo=instances.intencao_repo,
        gateway=instances.get_gateway_pagamento(),
        coordenador=get_coordenador_liquidacao(),
        janela_horas=settings.PAGAMENTOS_RECONCILIACAO_JANELA_HORAS,
        limite=settings.PAGAMENTOS_RECONCILIACAO_LIMITE,
    )

def get_cancelar_pedido_use_case() -> CancelarPedidoUseCase:
    return CancelarPedidoUseCase(
        ledger=instances.ledger_pedidos,
        unidade_trabalho=instances.unidade_trabalho,
        notificador=instances.notificador,
    )


def ignorar_assinatura_webhook() -> bool:
    """A verificação só pode ser desligada com DEBUG ativo."""
    if not settings.PAGAMENTOS_WEBHOOK_IGNORAR_ASSINATURA:
        return False
    if not settings.DEBUG:
        logger.error(
            "PAGAMENTOS_WEBHOOK_IGNORAR_ASSINATURA ignorado: só é aceito com DEBUG ativo."
        )
        return False
    return True
