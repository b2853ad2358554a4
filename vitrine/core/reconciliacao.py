# vitrine/core/reconciliacao.py
"""
Reconciliação periódica de intenções PENDING.

Consulta ativamente o provedor para fechar a lacuna de webhooks perdidos ou
atrasados e entrega o resultado ao mesmo CoordenadorLiquidacao usado pelo
webhook.
"""
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from vitrine.core.entities import (
    EstadoTransacao, IntencaoCheckout, ResumoReconciliacao, TransacaoPagamento
)
from vitrine.core.exceptions import ComunicacaoProvedorError, DadosInvalidosError
from vitrine.core.liquidacao import CoordenadorLiquidacao
from vitrine.core.ports import IGatewayPagamento, IIntencaoCheckoutRepository

logger = logging.getLogger(__name__)
logger_operador = logging.getLogger('vitrine.operador')

JANELA_PADRAO_HORAS = 24
LIMITE_PADRAO = 200


class ReconciliarCheckoutsUseCase:
    """Varredura de intenções pendentes dentro da janela de retrospectiva."""

    # compartilhada por todas as instâncias do processo
    _em_execucao = threading.Lock()

    def __init__(
        self,
        intencao_repo: IIntencaoCheckoutRepository,
        gateway: IGatewayPagamento,
        coordenador: CoordenadorLiquidacao,
        janela_horas: int = JANELA_PADRAO_HORAS,
        limite: int = LIMITE_PADRAO,
        relogio: Optional[Callable[[], datetime]] = None
    ):
        self.intencao_repo = intencao_repo
        self.gateway = gateway
        self.coordenador = coordenador
        self.janela_horas = janela_horas
        self.limite = limite
        self.relogio = relogio or (lambda: datetime.now(timezone.utc))

    def executar(self) -> ResumoReconciliacao:
        if not self._em_execucao.acquire(blocking=False):
            logger.warning("Reconciliação já em execução; esta rodada foi ignorada.")
            return ResumoReconciliacao(ignorada=True)

        try:
            return self._varrer()
        finally:
            self._em_execucao.release()

    def _varrer(self) -> ResumoReconciliacao:
        agora = self.relogio()
        desde = agora - timedelta(hours=self.janela_horas)
        resumo = ResumoReconciliacao()

        ids = self.intencao_repo.listar_ids_pendentes(desde, self.limite)
        logger.info("Reconciliação iniciada: %d intenções pendentes desde %s.", len(ids), desde)

        for intencao_id in ids:
            resumo.verificadas += 1
            try:
                # snapshot decodificado por intenção
                intencao = self.intencao_repo.buscar_por_id(intencao_id)
                if intencao is None or not intencao.pendente:
                    continue
                self._reconciliar(intencao, agora, resumo)
            except DadosInvalidosError as e:
                resumo.erros += 1
                logger_operador.error(
                    "Intenção %s não pode ser reconciliada (dados inválidos): %s", intencao_id, e.message
                )
            except Exception:
                resumo.erros += 1
                logger.exception("Erro ao reconciliar a intenção %s.", intencao_id)

        logger.info(
            "Reconciliação finalizada: %d verificadas, %d aprovadas, %d rejeitadas, "
            "%d expiradas, %d pendentes, %d erros.",
            resumo.verificadas, resumo.aprovadas, resumo.rejeitadas,
            resumo.expiradas, resumo.pendentes, resumo.erros,
        )
        return resumo

    def _consultar(self, intencao: IntencaoCheckout) -> Optional[TransacaoPagamento]:
        if intencao.id_transacao_provedor:
            return self.gateway.consultar_transacao(intencao.id_transacao_provedor)
        return self.gateway.consultar_por_referencia(intencao.referencia)

    def _reconciliar(self, intencao: IntencaoCheckout, agora: datetime, resumo: ResumoReconciliacao):
        try:
            transacao = self._consultar(intencao)
        except ComunicacaoProvedorError as e:
            resumo.erros += 1
            logger.warning(
                "Provedor indisponível para a referência %s: %s. Nova tentativa na próxima rodada.",
                intencao.referencia, e.message,
            )
            return

        if transacao is None:
            if intencao.esta_expirada(agora):
                # checkout abandonado: o link expirou sem transação no provedor
                abandono = TransacaoPagamento(
                    referencia=intencao.referencia,
                    status=EstadoTransacao.ERROR,
                    mensagem='Intenção expirada sem transação no provedor.',
                )
                self.coordenador.aplicar_status(intencao, abandono, origem='reconciliacao')
                resumo.expiradas += 1
            else:
                resumo.pendentes += 1
            return

        if transacao.referencia and transacao.referencia != intencao.referencia:
            resumo.erros += 1
            logger.error(
                "Transação %s pertence à referência %s, não a %s; ignorada.",
                transacao.id_transacao_provedor, transacao.referencia, intencao.referencia,
            )
            return

        resultado = self.coordenador.aplicar_status(intencao, transacao, origem='reconciliacao')
        if resultado.estado == EstadoTransacao.APPROVED:
            resumo.aprovadas += 1
        elif resultado.estado in EstadoTransacao.REJEITADOS:
            resumo.rejeitadas += 1
        else:
            resumo.pendentes += 1
