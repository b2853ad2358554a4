# vitrine/core/use_cases.py
"""
Implementação dos Casos de Uso (Lógica de Negócio) de checkout e pagamento.
Esta camada depende apenas das Entidades e Portas (Interfaces) do Core,
garantindo o isolamento da lógica de negócio.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from vitrine.core.assinatura import extrair_assinatura, propriedades_assinadas, verificar_webhook
from vitrine.core.checkout_url import (
    ConfiguracaoCheckout, construir_url_checkout, gerar_referencia, validar_referencia
)
from vitrine.core.entities import (
    EstadoTransacao, IntencaoCheckout, NotificacaoPedido, Pedido, ResultadoLiquidacao, SnapshotCarrinho,
    ItemSnapshot, TransacaoPagamento
)
from vitrine.core.exceptions import (
    AssinaturaInvalidaError, CarrinhoVazioError, DadosInvalidosError, EnderecoInvalidoError,
    EventoInvalidoError, IntencaoNaoEncontradaError
)
from vitrine.core.liquidacao import CoordenadorLiquidacao
from vitrine.core.ports import (
    ICalculadoraFrete, ICarrinhoService, IGatewayPagamento, IIntencaoCheckoutRepository,
    IPerfilCompradorService
)

logger = logging.getLogger(__name__)
logger_operador = logging.getLogger('vitrine.operador')

METODOS_PAGAMENTO = ('CARD', 'PSE', 'NEQUI', 'BANCOLOMBIA_TRANSFER', 'BANCOLOMBIA_QR', 'DAVIPLATA')
EXPIRACAO_PADRAO_MINUTOS = 15


# ====================================================================
# 1. CRIAÇÃO DO CHECKOUT
# ====================================================================

@dataclass
class CheckoutCriado:
    url_checkout: str
    referencia: str
    expira_em: datetime
    total: Decimal
    valor_centavos: int


class CriarCheckoutUseCase:
    """
    Caso de Uso que transforma o carrinho ativo em uma intenção PENDING e
    devolve a URL assinada do checkout hospedado. Nenhum pedido é criado aqui.
    """
    def __init__(
        self,
        carrinho_service: ICarrinhoService,
        perfil_service: IPerfilCompradorService,
        calculadora_frete: ICalculadoraFrete,
        intencao_repo: IIntencaoCheckoutRepository,
        config: ConfiguracaoCheckout,
        expiracao_minutos: Optional[Dict[str, int]] = None
    ):
        self.carrinho_service = carrinho_service
        self.perfil_service = perfil_service
        self.calculadora_frete = calculadora_frete
        self.intencao_repo = intencao_repo
        self.config = config
        self.expiracao_minutos = expiracao_minutos or {}

    def minutos_expiracao(self, metodo_pagamento: str) -> int:
        """Tempo limite por método de pagamento, com padrão de 15 minutos."""
        padrao = self.expiracao_minutos.get('default', EXPIRACAO_PADRAO_MINUTOS)
        return int(self.expiracao_minutos.get(metodo_pagamento, padrao))

    def executar(
        self,
        usuario_id: int,
        metodo_pagamento: str,
        endereco_envio_id: Optional[int] = None,
        notas: str = ''
    ) -> CheckoutCriado:
        metodo_pagamento = (metodo_pagamento or '').upper()
        if metodo_pagamento not in METODOS_PAGAMENTO:
            raise DadosInvalidosError(f"Método de pagamento não suportado: {metodo_pagamento!r}.")

        carrinho = self.carrinho_service.buscar_carrinho_ativo(usuario_id)
        if carrinho is None or not carrinho.itens:
            raise CarrinhoVazioError()

        validacao = self.carrinho_service.validar_para_checkout(carrinho)
        if not validacao.valido:
            raise DadosInvalidosError("; ".join(validacao.erros) or "Carrinho inválido para checkout.")

        comprador = self.perfil_service.dados_comprador(usuario_id)
        envio = None
        if endereco_envio_id is not None:
            envio = self.perfil_service.endereco_envio(usuario_id, endereco_envio_id)
            if envio is None:
                raise EnderecoInvalidoError("Endereço de entrega não encontrado para o usuário.")

        subtotal = carrinho.subtotal.quantize(Decimal('0.01'))
        custo_envio = Decimal(self.calculadora_frete.custo(subtotal, envio.cidade if envio else None))
        snapshot = SnapshotCarrinho(
            carrinho_id=carrinho.id,
            itens=[
                ItemSnapshot(
                    produto_id=item.produto_id,
                    nome=item.nome,
                    quantidade=item.quantidade,
                    preco_unitario=item.preco_unitario.quantize(Decimal('0.01')),
                    subtotal=item.subtotal.quantize(Decimal('0.01')),
                )
                for item in sorted(carrinho.itens, key=lambda i: i.produto_id)
            ],
            subtotal=subtotal,
            custo_envio=custo_envio.quantize(Decimal('0.01')),
            total=(subtotal + custo_envio).quantize(Decimal('0.01')),
            moeda=self.config.moeda,
        )
        snapshot.validar_totais()

        valor_centavos = snapshot.valor_centavos
        if valor_centavos < self.config.valor_minimo_centavos:
            raise DadosInvalidosError(
                f"O valor mínimo para pagamento é {self.config.valor_minimo_centavos // 100} {self.config.moeda}."
            )

        referencia = gerar_referencia()
        validar_referencia(referencia)
        agora = datetime.now(timezone.utc)
        intencao = IntencaoCheckout(
            referencia=referencia,
            usuario_id=usuario_id,
            carrinho_id=carrinho.id,
            metodo_pagamento=metodo_pagamento,
            dados_carrinho=snapshot,
            dados_comprador=comprador,
            dados_envio=envio,
            endereco_envio_id=endereco_envio_id,
            notas=notas or '',
            criado_em=agora,
            expira_em=agora + timedelta(minutes=self.minutos_expiracao(metodo_pagamento)),
        )

        # URL montada antes de persistir: configuração inválida não deixa intenção órfã
        url = construir_url_checkout(intencao, comprador, envio, valor_centavos, self.config)
        intencao = self.intencao_repo.criar(intencao)
        logger.info(
            "Intenção %s criada para o usuário %s (referência %s, total %s).",
            intencao.id, usuario_id, referencia, snapshot.total,
        )
        return CheckoutCriado(
            url_checkout=url,
            referencia=referencia,
            expira_em=intencao.expira_em,
            total=snapshot.total,
            valor_centavos=valor_centavos,
        )


# ====================================================================
# 2. WEBHOOK DO PROVEDOR
# ====================================================================

def normalizar_evento(payload: Mapping[str, Any]) -> TransacaoPagamento:
    """Extrai {id, referência, status, valor, moeda, método, mensagem} do evento."""
    dados = payload.get('data') if isinstance(payload, Mapping) else None
    transacao = dados.get('transaction') if isinstance(dados, Mapping) else None
    if not isinstance(transacao, Mapping):
        raise EventoInvalidoError("Evento sem objeto de transação.")

    referencia = transacao.get('reference')
    status = transacao.get('status')
    if not referencia or not status:
        raise EventoInvalidoError("Evento sem referência ou status.")
    status = str(status).upper()
    if status not in EstadoTransacao.TODOS:
        raise EventoInvalidoError(f"Status de transação desconhecido: {status}.")

    valor = transacao.get('amount_in_cents')
    return TransacaoPagamento(
        referencia=str(referencia),
        status=status,
        id_transacao_provedor=str(transacao['id']) if transacao.get('id') else None,
        valor_centavos=int(valor) if isinstance(valor, (int, str)) and str(valor).isdigit() else None,
        moeda=transacao.get('currency'),
        metodo_pagamento=transacao.get('payment_method_type'),
        mensagem=transacao.get('status_message'),
        evento=payload.get('event'),
    )


@dataclass
class ResultadoWebhook:
    referencia: str
    status: str
    intencao_encontrada: bool
    liquidacao: Optional[ResultadoLiquidacao] = None
    falha_liquidacao: bool = False


class ProcessarWebhookUseCase:
    """
    Valida a assinatura do evento, registra a transição na intenção e aciona
    a liquidação. Falhas de liquidação são absorvidas (o evento é confirmado
    ao provedor) e escaladas ao canal de operadores.
    """
    def __init__(
        self,
        intencao_repo: IIntencaoCheckoutRepository,
        coordenador: CoordenadorLiquidacao,
        segredo_eventos: Optional[str],
        ignorar_assinatura: bool = False
    ):
        self.intencao_repo = intencao_repo
        self.coordenador = coordenador
        self.segredo_eventos = segredo_eventos
        self.ignorar_assinatura = ignorar_assinatura

    def executar(self, payload: Dict[str, Any], cabecalhos: Mapping[str, str]) -> ResultadoWebhook:
        if self.ignorar_assinatura:
            logger.warning("Verificação de assinatura de webhook DESATIVADA por configuração.")
        else:
            assinatura = extrair_assinatura(payload, cabecalhos)
            if not verificar_webhook(payload, assinatura, propriedades_assinadas(payload), self.segredo_eventos):
                logger.warning("Webhook rejeitado: assinatura inválida ou ausente.")
                raise AssinaturaInvalidaError()

        transacao = normalizar_evento(payload)
        intencao = self.intencao_repo.buscar_por_referencia(transacao.referencia)
        if intencao is None:
            logger.warning(
                "Webhook para referência desconhecida %s (status %s); confirmado sem ação.",
                transacao.referencia, transacao.status,
            )
            return ResultadoWebhook(transacao.referencia, transacao.status, intencao_encontrada=False)

        try:
            resultado = self.coordenador.aplicar_status(intencao, transacao, origem='webhook')
        except Exception:
            logger_operador.exception(
                "Falha ao liquidar a referência %s a partir do webhook (status %s).",
                transacao.referencia, transacao.status,
            )
            return ResultadoWebhook(
                transacao.referencia, transacao.status, intencao_encontrada=True, falha_liquidacao=True
            )

        return ResultadoWebhook(
            transacao.referencia, transacao.status, intencao_encontrada=True, liquidacao=resultado
        )


# ====================================================================
# 3. CONSULTAS DO COMPRADOR
# ====================================================================

class ConsultarTransacaoUseCase:
    """
    Consulta manual de status no provedor (fallback quando o webhook atrasa).
    Usa o mesmo coordenador do webhook e da reconciliação.
    """
    def __init__(
        self,
        gateway: IGatewayPagamento,
        intencao_repo: IIntencaoCheckoutRepository,
        coordenador: CoordenadorLiquidacao
    ):
        self.gateway = gateway
        self.intencao_repo = intencao_repo
        self.coordenador = coordenador

    def executar(self, id_transacao: str, usuario_id: int) -> ResultadoLiquidacao:
        if not id_transacao:
            raise DadosInvalidosError("ID de transação é obrigatório.")

        transacao = self.gateway.consultar_transacao(id_transacao)
        intencao = self.intencao_repo.buscar_por_referencia(transacao.referencia)
        if intencao is None or intencao.usuario_id != usuario_id:
            raise IntencaoNaoEncontradaError("Transação não encontrada para este usuário.")

        if not transacao.id_transacao_provedor:
            transacao.id_transacao_provedor = id_transacao
        return self.coordenador.aplicar_status(intencao, transacao, origem='consulta_manual')


@dataclass
class TempoRestante:
    referencia: str
    estado: str
    expira_em: datetime
    segundos_restantes: int
    expirada: bool


class ConsultarTempoRestanteUseCase:
    """Informa quanto tempo resta para concluir o pagamento (apenas informativo)."""
    def __init__(self, intencao_repo: IIntencaoCheckoutRepository):
        self.intencao_repo = intencao_repo

    def executar(self, referencia: str, usuario_id: int, agora: Optional[datetime] = None) -> TempoRestante:
        intencao = self.intencao_repo.buscar_por_referencia(referencia)
        if intencao is None or intencao.usuario_id != usuario_id:
            raise IntencaoNaoEncontradaError(f"Intenção {referencia} não encontrada.")
        agora = agora or datetime.now(timezone.utc)
        return TempoRestante(
            referencia=intencao.referencia,
            estado=intencao.estado,
            expira_em=intencao.expira_em,
            segundos_restantes=intencao.segundos_restantes(agora),
            expirada=intencao.esta_expirada(agora),
        )


class ConsultarPedidoPorReferenciaUseCase:
    """Busca o pedido gerado para uma referência do comprador, se já existir."""
    def __init__(self, intencao_repo: IIntencaoCheckoutRepository, ledger):
        self.intencao_repo = intencao_repo
        self.ledger = ledger

    def executar(self, referencia: str, usuario_id: int) -> Optional[Pedido]:
        intencao = self.intencao_repo.buscar_por_referencia(referencia)
        if intencao is None or intencao.usuario_id != usuario_id:
            raise IntencaoNaoEncontradaError(f"Intenção {referencia} não encontrada.")
        return self.ledger.buscar_por_referencia(referencia)


# ====================================================================
# 4. OPERAÇÕES ADMINISTRATIVAS
# ====================================================================

class CancelarPedidoUseCase:
    """Cancela um pedido 'pendente' devolvendo o estoque. Cancelar de novo é no-op."""
    def __init__(self, ledger, unidade_trabalho, notificador=None):
        self.ledger = ledger
        self.uow = unidade_trabalho
        self.notificador = notificador

    def executar(self, pedido_id: int, motivo: Optional[str] = None) -> Pedido:
        with self.uow.atomico():
            pedido, cancelou = self.ledger.cancelar(pedido_id, motivo)
            if cancelou:
                logger.info("Pedido %s cancelado (motivo: %s).", pedido.numero_pedido, motivo or '-')
                if self.notificador is not None:
                    notificacao = NotificacaoPedido(
                        usuario_id=pedido.usuario_id,
                        pedido_id=pedido.id,
                        numero_pedido=pedido.numero_pedido,
                        novo_estado=pedido.estado,
                    )
                    self.uow.apos_commit(lambda: self._notificar(notificacao))
        return pedido

    def _notificar(self, notificacao):
        try:
            self.notificador.notificar_mudanca_estado(notificacao)
        except Exception:
            logger.exception("Falha ao notificar o cancelamento do pedido %s.", notificacao.numero_pedido)
