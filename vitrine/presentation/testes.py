from decimal import Decimal
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from vitrine.carrinho.models import Carrinho, ItemCarrinho
from vitrine.catalog.models import Produto
from vitrine.core.entities import TransacaoPagamento
from vitrine.core.exceptions import ComunicacaoProvedorError
from vitrine.core.testes import evento_assinado
from vitrine.infrastructure.models import Usuario
from vitrine.pagamentos.models import IntencaoCheckout
from vitrine.pedidos.models import Pedido


@override_settings(
    WOMPI_CHAVE_PUBLICA='pub_test_123',
    WOMPI_SEGREDO_INTEGRIDADE='test_integrity',
    WOMPI_SEGREDO_EVENTOS='test_events',
    PAGAMENTOS_URL_REDIRECIONAMENTO='https://loja.example.co/pagamento/retorno',
    PAGAMENTOS_WEBHOOK_IGNORAR_ASSINATURA=False,
)
class APIPagamentosTestCase(TestCase):
    """Testes das rotas REST de checkout, webhook e pedidos."""

    def setUp(self):
        self.client = APIClient()
        self.usuario = Usuario.objects.create_user(
            email='ana@example.com', password='senha-forte-123', first_name='Ana', last_name='Gómez'
        )
        self.equipe = Usuario.objects.create_user(
            email='operacao@example.com', password='senha-forte-123', is_staff=True
        )
        self.produto = Produto.objects.create(nome='Brincos de Ouro', preco=Decimal('100000.00'), estoque=3)
        self.carrinho = Carrinho.objects.create(usuario=self.usuario)
        ItemCarrinho.objects.create(
            carrinho=self.carrinho, produto=self.produto, quantidade=1, preco_unitario=Decimal('100000.00')
        )

    def _checkout(self):
        self.client.force_authenticate(user=self.usuario)
        response = self.client.post(reverse('api_checkout'), {'metodo_pagamento': 'card'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def _webhook(self, payload, **extra):
        self.client.force_authenticate(user=None)
        return self.client.post(reverse('webhook_wompi'), payload, format='json', **extra)

    # ====================================================================
    # CHECKOUT
    # ====================================================================

    def test_checkout_exige_autenticacao(self):
        response = self.client.post(reverse('api_checkout'), {'metodo_pagamento': 'CARD'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_checkout_devolve_url_assinada(self):
        """
        Cenário: Comprador com 100.000 no carrinho e frete padrão.
        A URL leva o valor em centavos, a referência e a assinatura de integridade.
        """
        dados = self._checkout()

        self.assertTrue(dados['url_checkout'].startswith('https://checkout.wompi.co/p/?'))
        parametros = parse_qs(urlparse(dados['url_checkout']).query)
        self.assertEqual(parametros['public-key'], ['pub_test_123'])
        self.assertEqual(parametros['amount-in-cents'], ['11800000'])
        self.assertEqual(parametros['reference'], [dados['referencia']])
        self.assertIn('signature:integrity', parametros)
        self.assertEqual(dados['valor_centavos'], 11800000)
        self.assertTrue(IntencaoCheckout.objects.filter(referencia_pagamento=dados['referencia']).exists())
        self.assertFalse(Pedido.objects.exists())

    def test_checkout_com_carrinho_vazio(self):
        self.carrinho.itens.all().delete()
        self.client.force_authenticate(user=self.usuario)

        response = self.client.post(reverse('api_checkout'), {'metodo_pagamento': 'CARD'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(IntencaoCheckout.objects.exists())

    def test_checkout_com_metodo_desconhecido(self):
        self.client.force_authenticate(user=self.usuario)

        response = self.client.post(reverse('api_checkout'), {'metodo_pagamento': 'BITCOIN'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(WOMPI_SEGREDO_INTEGRIDADE='')
    def test_checkout_sem_segredo_configurado(self):
        self.client.force_authenticate(user=self.usuario)

        with self.assertLogs('vitrine', level='ERROR'):
            response = self.client.post(reverse('api_checkout'), {'metodo_pagamento': 'CARD'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertFalse(IntencaoCheckout.objects.exists())

    # ====================================================================
    # WEBHOOK
    # ====================================================================

    def test_webhook_aprovado_cria_pedido(self):
        referencia = self._checkout()['referencia']

        response = self._webhook(evento_assinado(referencia=referencia))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['referencia'], referencia)
        pedido = Pedido.objects.get()
        self.assertEqual(pedido.referencia_pagamento, referencia)
        self.assertEqual(pedido.total, Decimal('118000.00'))

    def test_webhook_com_assinatura_invalida(self):
        referencia = self._checkout()['referencia']
        payload = evento_assinado(referencia=referencia)
        payload['signature']['checksum'] = '0' * 64

        response = self._webhook(payload)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(Pedido.objects.exists())

    def test_webhook_assinado_com_outro_segredo(self):
        referencia = self._checkout()['referencia']

        response = self._webhook(evento_assinado(referencia=referencia, segredo='outro_segredo'))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_webhook_sem_referencia(self):
        payload = evento_assinado(referencia='')

        response = self._webhook(payload)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_webhook_para_referencia_desconhecida_e_confirmado(self):
        response = self._webhook(evento_assinado(referencia='PED-FFFFFFFF-1700000000000'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Pedido.objects.exists())

    def test_webhook_com_falha_de_estoque_e_confirmado(self):
        """
        Cenário: Produto esgotado entre o checkout e a aprovação.
        O provedor recebe 200 (não reenvia) e a falha fica com a operação.
        """
        referencia = self._checkout()['referencia']
        Produto.objects.filter(pk=self.produto.pk).update(estoque=0)

        with self.assertLogs('vitrine.operador', level='ERROR'):
            response = self._webhook(evento_assinado(referencia=referencia))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Pedido.objects.exists())

    # ====================================================================
    # CONSULTAS
    # ====================================================================

    def test_tempo_restante(self):
        referencia = self._checkout()['referencia']

        response = self.client.get(reverse('api_tempo_restante', args=[referencia]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['estado'], 'PENDING')
        self.assertFalse(response.data['expirada'])
        self.assertGreater(response.data['segundos_restantes'], 0)
        self.assertLessEqual(response.data['segundos_restantes'], 15 * 60)

    def test_tempo_restante_de_outro_usuario(self):
        referencia = self._checkout()['referencia']
        self.client.force_authenticate(user=self.equipe)

        response = self.client.get(reverse('api_tempo_restante', args=[referencia]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_pedido_por_referencia(self):
        referencia = self._checkout()['referencia']

        antes = self.client.get(reverse('api_pedido_por_referencia', args=[referencia]))
        self._webhook(evento_assinado(referencia=referencia))
        self.client.force_authenticate(user=self.usuario)
        depois = self.client.get(reverse('api_pedido_por_referencia', args=[referencia]))

        self.assertIsNone(antes.data['pedido'])
        self.assertEqual(depois.data['pedido']['referencia_pagamento'], referencia)

    def test_configuracao_publica_nao_expoe_segredos(self):
        response = self.client.get(reverse('api_configuracao_pagamentos'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['chave_publica'], 'pub_test_123')
        conteudo = response.content.decode()
        self.assertNotIn('test_integrity', conteudo)
        self.assertNotIn('test_events', conteudo)

    @patch('vitrine.infrastructure.instances.get_gateway_pagamento')
    def test_consulta_manual_de_transacao_aprovada(self, mock_gateway):
        referencia = self._checkout()['referencia']
        mock_gateway.return_value.consultar_transacao.return_value = TransacaoPagamento(
            referencia=referencia, status='APPROVED', id_transacao_provedor='tx-manual'
        )

        response = self.client.get(reverse('api_consultar_transacao', args=['tx-manual']))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'APPROVED')
        self.assertEqual(response.data['numero_pedido'], Pedido.objects.get().numero_pedido)

    @patch('vitrine.infrastructure.instances.get_gateway_pagamento')
    def test_consulta_manual_com_provedor_fora(self, mock_gateway):
        self.client.force_authenticate(user=self.usuario)
        mock_gateway.return_value.consultar_transacao.side_effect = ComunicacaoProvedorError('timeout')

        response = self.client.get(reverse('api_consultar_transacao', args=['tx-1']))

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    @patch('vitrine.infrastructure.instances.get_gateway_pagamento')
    def test_consulta_manual_com_status_desconhecido_do_provedor(self, mock_gateway):
        """
        Cenário: O provedor devolve um status fora do ciclo conhecido (REFUNDED).
        A resposta é 502 e a intenção continua pendente.
        """
        referencia = self._checkout()['referencia']
        mock_gateway.return_value.consultar_transacao.return_value = TransacaoPagamento(
            referencia=referencia, status='REFUNDED', id_transacao_provedor='tx-estranha'
        )

        response = self.client.get(reverse('api_consultar_transacao', args=['tx-estranha']))

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        intencao = IntencaoCheckout.objects.get(referencia_pagamento=referencia)
        self.assertEqual(intencao.estado_transacao, 'PENDING')
        self.assertFalse(Pedido.objects.exists())

    @patch('vitrine.infrastructure.instances.get_gateway_pagamento')
    def test_consulta_manual_de_intencao_com_carrinho_corrompido(self, mock_gateway):
        """
        Cenário: A intenção gravada tem o snapshot do carrinho corrompido.
        A resposta é 409 e os operadores são avisados.
        """
        referencia = self._checkout()['referencia']
        IntencaoCheckout.objects.filter(referencia_pagamento=referencia).update(dados_carrinho={'itens': []})
        mock_gateway.return_value.consultar_transacao.return_value = TransacaoPagamento(
            referencia=referencia, status='APPROVED', id_transacao_provedor='tx-manual'
        )

        with self.assertLogs('vitrine.operador', level='ERROR'):
            response = self.client.get(reverse('api_consultar_transacao', args=['tx-manual']))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(Pedido.objects.exists())

    @patch('vitrine.infrastructure.instances.get_gateway_pagamento')
    def test_bancos_pse(self, mock_gateway):
        mock_gateway.return_value.listar_bancos_pse.return_value = [{'codigo': '1022', 'nome': 'BANCO UNION'}]

        response = self.client.get(reverse('api_bancos_pse'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['bancos'][0]['codigo'], '1022')

    # ====================================================================
    # CANCELAMENTO (EQUIPE)
    # ====================================================================

    def test_cancelamento_exige_equipe(self):
        referencia = self._checkout()['referencia']
        self._webhook(evento_assinado(referencia=referencia))
        pedido = Pedido.objects.get()
        self.client.force_authenticate(user=self.usuario)

        response = self.client.post(reverse('api_cancelar_pedido', args=[pedido.id]), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cancelamento_pela_equipe_devolve_estoque(self):
        referencia = self._checkout()['referencia']
        self._webhook(evento_assinado(referencia=referencia))
        pedido = Pedido.objects.get()
        self.client.force_authenticate(user=self.equipe)

        response = self.client.post(
            reverse('api_cancelar_pedido', args=[pedido.id]), {'motivo': 'Sem contato'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['estado'], 'cancelada')
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 3)

    def test_cancelamento_de_pedido_inexistente(self):
        self.client.force_authenticate(user=self.equipe)

        response = self.client.post(reverse('api_cancelar_pedido', args=[999]), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
