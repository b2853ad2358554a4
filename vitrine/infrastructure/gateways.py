import logging
from typing import List, Optional

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail

from vitrine.core.entities import EstadoPedido, NotificacaoPedido, TransacaoPagamento
from vitrine.core.exceptions import ComunicacaoProvedorError, ConfiguracaoInvalidaError
from vitrine.core.ports import IGatewayPagamento, INotificador

logger = logging.getLogger(__name__)


# ====================================================================
# GATEWAYS: Implementações concretas que se comunicam com APIs externas.
# ====================================================================

class WompiGateway(IGatewayPagamento):
    """
    Gateway de consulta à API REST da Wompi. Só leitura: a cobrança em si
    acontece no checkout hospedado, para onde o comprador é redirecionado.
    """

    URLS_API = {
        'sandbox': 'https://sandbox.wompi.co/v1',
        'production': 'https://production.wompi.co/v1',
    }

    def __init__(
        self,
        chave_publica: Optional[str] = None,
        chave_privada: Optional[str] = None,
        ambiente: Optional[str] = None,
        timeout: Optional[int] = None,
        sessao: Optional[requests.Session] = None
    ):
        self.chave_publica = chave_publica if chave_publica is not None else settings.WOMPI_CHAVE_PUBLICA
        self.chave_privada = chave_privada if chave_privada is not None else settings.WOMPI_CHAVE_PRIVADA
        ambiente = (ambiente or settings.WOMPI_AMBIENTE).lower()
        if ambiente not in self.URLS_API:
            raise ConfiguracaoInvalidaError(f"Ambiente Wompi desconhecido: {ambiente!r}.")
        self.api_base_url = self.URLS_API[ambiente]
        self.timeout = timeout or settings.WOMPI_TIMEOUT
        self.sessao = sessao or requests.Session()

    # --- MÉTODOS PRIVADOS ---

    def _get(self, caminho: str, chave: str, params: Optional[dict] = None) -> dict:
        if not chave:
            raise ConfiguracaoInvalidaError("Chave da API Wompi não configurada.")
        headers = {"Authorization": f"Bearer {chave}"}
        url = f"{self.api_base_url}{caminho}"
        try:
            response = self.sessao.get(url, headers=headers, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.warning("Wompi respondeu %s para %s.", status_code, caminho)
            raise ComunicacaoProvedorError(
                f"Erro HTTP {status_code} ao consultar a Wompi.", status_code=status_code
            )
        except requests.exceptions.RequestException as e:
            logger.warning("Falha de conexão com a Wompi em %s: %s", caminho, e)
            raise ComunicacaoProvedorError(f"Erro de conexão com a API da Wompi: {e}")
        except ValueError:
            raise ComunicacaoProvedorError("Resposta da Wompi não é um JSON válido.")

    @staticmethod
    def _para_transacao(data: dict) -> TransacaoPagamento:
        valor = data.get("amount_in_cents")
        return TransacaoPagamento(
            referencia=data.get("reference") or '',
            status=(data.get("status") or '').upper(),
            id_transacao_provedor=str(data["id"]) if data.get("id") else None,
            valor_centavos=int(valor) if isinstance(valor, int) else None,
            moeda=data.get("currency"),
            metodo_pagamento=data.get("payment_method_type"),
            mensagem=data.get("status_message"),
        )

    # --- MÉTODOS PÚBLICOS QUE IMPLEMENTAM O PROTOCOLO CORE ---

    def consultar_transacao(self, id_transacao: str) -> TransacaoPagamento:
        """Busca o status atual de uma transação pelo id do provedor."""
        corpo = self._get(f"/transactions/{id_transacao}", self.chave_publica)
        data = corpo.get("data")
        if not isinstance(data, dict) or not data.get("reference"):
            raise ComunicacaoProvedorError(f"Transação {id_transacao} sem dados na resposta da Wompi.")
        return self._para_transacao(data)

    def consultar_por_referencia(self, referencia: str) -> Optional[TransacaoPagamento]:
        """
        Busca a transação mais recente associada à referência. Devolve None
        quando o comprador nunca chegou a iniciar o pagamento.
        """
        corpo = self._get("/transactions", self.chave_privada, params={"reference": referencia})
        resultados = corpo.get("data") or []
        if isinstance(resultados, dict):
            resultados = [resultados]
        if not resultados:
            return None
        resultados = sorted(resultados, key=lambda t: t.get("created_at") or '', reverse=True)
        return self._para_transacao(resultados[0])

    def listar_bancos_pse(self) -> List[dict]:
        corpo = self._get("/pse/financial_institutions", self.chave_publica)
        return [
            {"codigo": banco.get("financial_institution_code"), "nome": banco.get("financial_institution_name")}
            for banco in corpo.get("data") or []
        ]


# ====================================================================
# NOTIFICAÇÕES
# ====================================================================

class EmailNotificador(INotificador):
    """Envia ao comprador um e-mail curto quando o pedido muda de estado."""

    ASSUNTOS = {
        EstadoPedido.PENDENTE: "Recebemos o seu pedido {numero}",
        EstadoPedido.CONFIRMADA: "Pagamento confirmado para o pedido {numero}",
        EstadoPedido.CANCELADA: "O pedido {numero} foi cancelado",
    }

    def notificar_mudanca_estado(self, notificacao: NotificacaoPedido):
        User = get_user_model()
        email = User.objects.filter(pk=notificacao.usuario_id).values_list('email', flat=True).first()
        if not email:
            logger.warning("Usuário %s sem e-mail; notificação do pedido %s ignorada.",
                           notificacao.usuario_id, notificacao.numero_pedido)
            return

        assunto = self.ASSUNTOS.get(
            notificacao.novo_estado, "Atualização do pedido {numero}"
        ).format(numero=notificacao.numero_pedido)
        mensagem = (
            f"O status do seu pedido {notificacao.numero_pedido} foi atualizado para: "
            f"{notificacao.novo_estado}.\n\nPara mais informações, acesse a sua conta."
        )
        send_mail(assunto, mensagem, settings.DEFAULT_FROM_EMAIL, [email], fail_silently=False)
