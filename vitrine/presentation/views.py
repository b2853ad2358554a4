import logging

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from vitrine.core import dependency_injection as di
from vitrine.core.exceptions import (
    AssinaturaInvalidaError,
    CarrinhoVazioError,
    ComunicacaoProvedorError,
    ConfiguracaoInvalidaError,
    ConflitoEstoqueError,
    DadosInvalidosError,
    EnderecoInvalidoError,
    EventoInvalidoError,
    IntencaoNaoAprovadaError,
    ItemNaoEncontradoError,
    TransicaoPedidoInvalidaError,
)
from vitrine.infrastructure import instances

from .serializers import (
    CancelarPedidoSerializer,
    CheckoutCriadoSerializer,
    CheckoutSerializer,
    PedidoSerializer,
    TempoRestanteSerializer,
)

logger = logging.getLogger(__name__)
logger_operador = logging.getLogger('vitrine.operador')

MENSAGEM_PROVEDOR_INDISPONIVEL = 'Não foi possível consultar o provedor de pagamento. Tente novamente.'
MENSAGEM_PAGAMENTOS_INDISPONIVEIS = 'Pagamentos temporariamente indisponíveis.'
MENSAGEM_FALHA_LIQUIDACAO = 'Pagamento recebido, mas não foi possível confirmar o pedido. Nossa equipe foi avisada.'


# ====================================================================
# VIEWS: Orquestram a requisição, a execução dos casos de uso e a resposta.
# ====================================================================

class CheckoutAPIView(APIView):
    """
    Cria a intenção de checkout a partir do carrinho ativo e devolve a URL
    assinada do checkout hospedado. Nenhum pedido é criado aqui.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            checkout = di.get_criar_checkout_use_case().executar(
                usuario_id=request.user.id,
                metodo_pagamento=serializer.validated_data['metodo_pagamento'],
                endereco_envio_id=serializer.validated_data.get('endereco_envio_id'),
                notas=serializer.validated_data.get('notas', ''),
            )
        except CarrinhoVazioError:
            return Response({'message': 'O carrinho está vazio.'}, status=status.HTTP_400_BAD_REQUEST)
        except EnderecoInvalidoError:
            return Response({'message': 'Endereço de entrega inválido.'}, status=status.HTTP_400_BAD_REQUEST)
        except DadosInvalidosError as e:
            return Response({'message': e.message}, status=status.HTTP_400_BAD_REQUEST)
        except ConfiguracaoInvalidaError as e:
            logger.error("Checkout indisponível por configuração inválida: %s", e.message)
            return Response({'message': MENSAGEM_PAGAMENTOS_INDISPONIVEIS},
                            status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(CheckoutCriadoSerializer(checkout).data, status=status.HTTP_201_CREATED)


class WebhookWompiView(APIView):
    """
    Recebe os eventos de transação da Wompi. Assinatura inválida -> 401,
    evento malformado -> 400; qualquer outro caso é confirmado com 200 para
    que o provedor não reenvie indefinidamente.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        payload = request.data
        if not isinstance(payload, dict):
            return Response({'message': 'Corpo do evento inválido.'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            resultado = di.get_processar_webhook_use_case().executar(payload, request.headers)
        except AssinaturaInvalidaError:
            return Response({'message': 'Assinatura inválida.'}, status=status.HTTP_401_UNAUTHORIZED)
        except EventoInvalidoError as e:
            logger.warning("Webhook malformado: %s", e.message)
            return Response({'message': 'Evento inválido.'}, status=status.HTTP_400_BAD_REQUEST)

        return Response({'recebido': True, 'referencia': resultado.referencia}, status=status.HTTP_200_OK)


class ConsultarTransacaoAPIView(APIView):
    """Consulta manual do status de uma transação (fallback do webhook)."""
    permission_classes = [IsAuthenticated]

    def get(self, request, id_transacao):
        try:
            resultado = di.get_consultar_transacao_use_case().executar(id_transacao, request.user.id)
        except ItemNaoEncontradoError:
            return Response({'message': 'Transação não encontrada.'}, status=status.HTTP_404_NOT_FOUND)
        except ComunicacaoProvedorError:
            return Response({'message': MENSAGEM_PROVEDOR_INDISPONIVEL}, status=status.HTTP_502_BAD_GATEWAY)
        except EventoInvalidoError as e:
            logger.warning("Resposta do provedor inutilizável para a transação %s: %s", id_transacao, e.message)
            return Response({'message': MENSAGEM_PROVEDOR_INDISPONIVEL}, status=status.HTTP_502_BAD_GATEWAY)
        except (ConflitoEstoqueError, IntencaoNaoAprovadaError):
            return Response({'message': MENSAGEM_FALHA_LIQUIDACAO}, status=status.HTTP_409_CONFLICT)
        except DadosInvalidosError as e:
            logger_operador.error("Consulta manual da transação %s sem liquidação: %s", id_transacao, e.message)
            return Response({'message': MENSAGEM_FALHA_LIQUIDACAO}, status=status.HTTP_409_CONFLICT)
        except ConfiguracaoInvalidaError:
            return Response({'message': MENSAGEM_PAGAMENTOS_INDISPONIVEIS},
                            status=status.HTTP_503_SERVICE_UNAVAILABLE)

        pedido = resultado.pedido
        return Response({
            'id_transacao': id_transacao,
            'referencia': resultado.intencao.referencia,
            'status': resultado.estado,
            'numero_pedido': pedido.numero_pedido if pedido else None,
        })


class TempoRestanteAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, referencia):
        try:
            tempo = di.get_consultar_tempo_restante_use_case().executar(referencia, request.user.id)
        except ItemNaoEncontradoError:
            return Response({'message': 'Intenção não encontrada.'}, status=status.HTTP_404_NOT_FOUND)
        return Response(TempoRestanteSerializer(tempo).data)


class PedidoPorReferenciaAPIView(APIView):
    """Página de retorno: informa se o pedido da referência já foi liquidado."""
    permission_classes = [IsAuthenticated]

    def get(self, request, referencia):
        try:
            pedido = di.get_consultar_pedido_por_referencia_use_case().executar(referencia, request.user.id)
        except ItemNaoEncontradoError:
            return Response({'message': 'Intenção não encontrada.'}, status=status.HTTP_404_NOT_FOUND)
        return Response({
            'referencia': referencia,
            'pedido': PedidoSerializer(pedido).data if pedido else None,
        })


class ConfiguracaoPagamentosAPIView(APIView):
    """Dados públicos do provedor para o frontend. Nunca expõe segredos."""
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            'chave_publica': settings.WOMPI_CHAVE_PUBLICA,
            'moeda': settings.PAGAMENTOS_MOEDA,
            'ambiente': settings.WOMPI_AMBIENTE,
            'valor_minimo_centavos': settings.PAGAMENTOS_VALOR_MINIMO_CENTAVOS,
        })


class BancosPSEAPIView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        try:
            bancos = instances.get_gateway_pagamento().listar_bancos_pse()
        except (ComunicacaoProvedorError, ConfiguracaoInvalidaError):
            return Response({'message': MENSAGEM_PROVEDOR_INDISPONIVEL}, status=status.HTTP_502_BAD_GATEWAY)
        return Response({'bancos': bancos})


# ====================================================================
# VIEWS ADMINISTRATIVAS
# ====================================================================

class CancelarPedidoAPIView(APIView):
    """Cancela um pedido pendente e devolve o estoque (somente equipe)."""
    permission_classes = [IsAdminUser]

    def post(self, request, pedido_id):
        serializer = CancelarPedidoSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            pedido = di.get_cancelar_pedido_use_case().executar(
                pedido_id, serializer.validated_data.get('motivo') or None
            )
        except ItemNaoEncontradoError:
            return Response({'message': 'Pedido não encontrado.'}, status=status.HTTP_404_NOT_FOUND)
        except TransicaoPedidoInvalidaError as e:
            return Response({'message': e.message}, status=status.HTTP_409_CONFLICT)
        return Response(PedidoSerializer(pedido).data, status=status.HTTP_200_OK)
