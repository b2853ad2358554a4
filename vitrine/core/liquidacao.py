# vitrine/core/liquidacao.py
"""
Coordenador de Liquidação.

Único ponto do sistema que converte uma intenção APPROVED em pedido. É
compartilhado pelo webhook, pela reconciliação periódica e pela consulta
manual de status: os três chamadores só diferem na forma como descobriram
o status no provedor.
"""
import logging
from typing import Optional

from vitrine.core.entities import (
    EstadoPedido, EstadoTransacao, IntencaoCheckout, NotificacaoPedido, Pedido,
    ResultadoLiquidacao, TransacaoPagamento
)
from vitrine.core.exceptions import (
    ConflitoEstoqueError, EventoInvalidoError, IntencaoNaoAprovadaError,
    LiquidacaoDuplicadaError
)
from vitrine.core.ports import (
    IIntencaoCheckoutRepository, ILedgerPedidos, INotificador, IUnidadeDeTrabalho
)

logger = logging.getLogger(__name__)
logger_operador = logging.getLogger('vitrine.operador')


class CoordenadorLiquidacao:
    """Máquina de estados da liquidação: PENDING -> APPROVED -> pedido criado."""

    def __init__(
        self,
        intencao_repo: IIntencaoCheckoutRepository,
        ledger: ILedgerPedidos,
        unidade_trabalho: IUnidadeDeTrabalho,
        notificador: Optional[INotificador] = None
    ):
        self.intencao_repo = intencao_repo
        self.ledger = ledger
        self.uow = unidade_trabalho
        self.notificador = notificador

    # ----------------------------------------------------------------
    # Confirmação (transação única)
    # ----------------------------------------------------------------

    def confirmar(self, intencao_id: str) -> Pedido:
        """
        Cria (ou recupera) o pedido de uma intenção aprovada. Seguro sob
        chamadas concorrentes: os bloqueios de linha sobre a intenção e sobre
        o pedido da mesma referência serializam os confirmadores.
        """
        with self.uow.atomico():
            intencao = self.intencao_repo.bloquear_aprovada(intencao_id)
            if intencao is None:
                raise IntencaoNaoAprovadaError(
                    f"Intenção {intencao_id} não encontrada ou não aprovada."
                )

            existente = self.ledger.bloquear_por_referencia(intencao.referencia)
            if existente is not None:
                return self._repetir_confirmacao(existente)

            try:
                with self.uow.atomico():
                    pedido = self.ledger.criar_a_partir_do_carrinho(intencao)
            except LiquidacaoDuplicadaError:
                logger.warning(
                    "Pedido concorrente detectado para a referência %s; reutilizando o existente.",
                    intencao.referencia,
                )
                existente = self.ledger.bloquear_por_referencia(intencao.referencia)
                if existente is None:
                    raise
                return self._repetir_confirmacao(existente)

            logger.info(
                "Pedido %s criado para a referência %s (total %s).",
                pedido.numero_pedido, intencao.referencia, pedido.total,
            )
            self._agendar_notificacao(pedido)
            return pedido

    def _repetir_confirmacao(self, pedido: Pedido) -> Pedido:
        """Repetição idempotente: promove 'pendente' a 'confirmada' e devolve o mesmo pedido."""
        if pedido.estado == EstadoPedido.PENDENTE:
            pedido = self.ledger.atualizar_estado(pedido.id, EstadoPedido.CONFIRMADA)
            logger.info("Pedido %s confirmado por nova aprovação.", pedido.numero_pedido)
            self._agendar_notificacao(pedido)
        elif pedido.estado == EstadoPedido.CANCELADA:
            logger.warning(
                "Aprovação recebida para o pedido cancelado %s; nenhuma alteração feita.",
                pedido.numero_pedido,
            )
        return pedido

    # ----------------------------------------------------------------
    # Aplicação de status do provedor (rotina compartilhada)
    # ----------------------------------------------------------------

    def aplicar_status(
        self,
        intencao: IntencaoCheckout,
        transacao: TransacaoPagamento,
        origem: str
    ) -> ResultadoLiquidacao:
        """
        Registra a transição informada pelo provedor e, se for aprovação,
        liquida. A transição é gravada antes da liquidação para permanecer
        durável mesmo que a liquidação falhe.
        """
        status = (transacao.status or '').upper()
        if status not in EstadoTransacao.TODOS:
            raise EventoInvalidoError(f"Status de transação desconhecido: {transacao.status!r}.")

        atual, mudou = self.intencao_repo.atualizar_estado(
            intencao.id, status, transacao.id_transacao_provedor
        )
        logger.info(
            "[%s] Referência %s: status do provedor %s, estado da intenção %s (mudou=%s).",
            origem, atual.referencia, status, atual.estado, mudou,
        )

        if status == EstadoTransacao.APPROVED:
            if atual.estado != EstadoTransacao.APPROVED:
                # dinheiro capturado pelo provedor sem pedido: exige conferência manual
                logger_operador.error(
                    "[%s] Aprovação %s para a referência %s não liquidada: intenção já está em %s.",
                    origem, transacao.id_transacao_provedor or '-', atual.referencia, atual.estado,
                )
                return ResultadoLiquidacao(intencao=atual, estado=atual.estado, mudou_estado=mudou)
            try:
                pedido = self.confirmar(atual.id)
            except ConflitoEstoqueError as e:
                self.intencao_repo.registrar_falha_liquidacao(atual.id)
                logger.error(
                    "[%s] Conflito de estoque/preço ao liquidar a referência %s: %s",
                    origem, atual.referencia, e.message,
                )
                raise
            return ResultadoLiquidacao(
                intencao=atual, estado=atual.estado, pedido=pedido, mudou_estado=mudou
            )

        if status in EstadoTransacao.REJEITADOS and atual.estado == EstadoTransacao.APPROVED:
            # pedido já liquidado nunca é revertido por evento posterior
            logger.warning(
                "[%s] Status %s recebido para a referência %s já aprovada; ignorado.",
                origem, status, atual.referencia,
            )

        return ResultadoLiquidacao(intencao=atual, estado=atual.estado, mudou_estado=mudou)

    # ----------------------------------------------------------------
    # Notificações (fire-and-forget, após o commit)
    # ----------------------------------------------------------------

    def _agendar_notificacao(self, pedido: Pedido):
        if self.notificador is None:
            return
        notificacao = NotificacaoPedido(
            usuario_id=pedido.usuario_id,
            pedido_id=pedido.id,
            numero_pedido=pedido.numero_pedido,
            novo_estado=pedido.estado,
        )
        self.uow.apos_commit(lambda: self._notificar(notificacao))

    def _notificar(self, notificacao: NotificacaoPedido):
        try:
            self.notificador.notificar_mudanca_estado(notificacao)
        except Exception:
            logger.exception(
                "Falha ao notificar a mudança do pedido %s para %s.",
                notificacao.numero_pedido, notificacao.novo_estado,
            )
