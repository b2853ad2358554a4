from datetime import date, timedelta
from io import StringIO
from threading import Barrier, Thread
from decimal import Decimal
from unittest import skipUnless
from unittest.mock import Mock, patch

import requests
from django.core import mail
from django.core.management import call_command
from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone

# Importamos as classes que queremos testar
from vitrine.carrinho.models import Carrinho as CarrinhoModel, ItemCarrinho as ItemCarrinhoModel
from vitrine.catalog.models import Produto as ProdutoModel
from vitrine.core import dependency_injection as di
from vitrine.core.entities import EstadoPedido, EstadoTransacao, TransacaoPagamento
from vitrine.core.exceptions import (
    ComunicacaoProvedorError, ConfiguracaoInvalidaError, ConflitoEstoqueError, IntencaoNaoEncontradaError,
    TransicaoPedidoInvalidaError,
)
from vitrine.core.reconciliacao import ReconciliarCheckoutsUseCase
from vitrine.core.testes import evento_assinado
from vitrine.infrastructure import instances
from vitrine.infrastructure.frete import CalculadoraFreteTabela
from vitrine.infrastructure.gateways import WompiGateway
from vitrine.infrastructure.models import Endereco, Usuario
from vitrine.infrastructure.repositories import IntencaoCheckoutRepositoryDjango, LedgerPedidosDjango
from vitrine.pagamentos.models import IntencaoCheckout as IntencaoModel
from vitrine.pedidos.models import Pedido as PedidoModel


CONFIGURACAO_TESTE = dict(
    WOMPI_CHAVE_PUBLICA='pub_test_123',
    WOMPI_SEGREDO_INTEGRIDADE='test_integrity',
    WOMPI_SEGREDO_EVENTOS='test_events',
    PAGAMENTOS_URL_REDIRECIONAMENTO='https://loja.example.co/pagamento/retorno',
    PAGAMENTOS_WEBHOOK_IGNORAR_ASSINATURA=False,
    FRETE_CUSTO_PADRAO=18000,
    FRETE_GRATIS_A_PARTIR_DE=300000,
    FRETE_TABELA_CIDADES={'CUCUTA': 12000},
    EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend',
)


@override_settings(**CONFIGURACAO_TESTE)
class LiquidacaoIntegracaoTestCase(TestCase):
    """
    Fluxo completo contra o banco de teste: checkout -> webhook -> pedido.
    """

    def setUp(self):
        """
        Cria um comprador, um produto com 5 unidades e um carrinho ativo com 1 unidade.
        """
        self.usuario = Usuario.objects.create_user(
            email='ana@example.com', password='senha-forte-123', first_name='Ana', last_name='Gómez'
        )
        self.produto = ProdutoModel.objects.create(nome='Anel de Prata', preco=Decimal('100000.00'), estoque=5)
        self.carrinho = CarrinhoModel.objects.create(usuario=self.usuario)
        ItemCarrinhoModel.objects.create(
            carrinho=self.carrinho, produto=self.produto, quantidade=1, preco_unitario=Decimal('100000.00')
        )
        self.ledger = LedgerPedidosDjango()
        self.intencao_repo = IntencaoCheckoutRepositoryDjango()

    def _criar_checkout(self):
        return di.get_criar_checkout_use_case().executar(usuario_id=self.usuario.id, metodo_pagamento='CARD')

    def _webhook(self, referencia, status, id_transacao='1234-1610641025-49201'):
        payload = evento_assinado(referencia=referencia, status=status, id_transacao=id_transacao)
        return di.get_processar_webhook_use_case().executar(payload, {})

    def test_checkout_grava_intencao_pendente_sem_pedido(self):
        # ACT
        checkout = self._criar_checkout()

        # ASSERT
        intencao = IntencaoModel.objects.get(referencia_pagamento=checkout.referencia)
        self.assertEqual(intencao.estado_transacao, EstadoTransacao.PENDING)
        self.assertEqual(intencao.dados_carrinho['total'], '118000.00')
        self.assertEqual(checkout.valor_centavos, 11800000)
        self.assertFalse(PedidoModel.objects.exists())
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 5)

    def test_aprovacao_duplicada_cria_um_unico_pedido(self):
        """
        Cenário: Duas entregas de APPROVED para a mesma referência.
        O primeiro cria o pedido de 118.000; o segundo devolve o mesmo, estoque baixado uma vez.
        """
        # ARRANGE
        checkout = self._criar_checkout()

        # ACT
        primeiro = self._webhook(checkout.referencia, 'APPROVED')
        segundo = self._webhook(checkout.referencia, 'APPROVED')

        # ASSERT
        self.assertEqual(PedidoModel.objects.count(), 1)
        pedido = PedidoModel.objects.get()
        self.assertEqual(pedido.total, Decimal('118000.00'))
        self.assertEqual(pedido.subtotal, Decimal('100000.00'))
        self.assertEqual(pedido.custo_envio, Decimal('18000.00'))
        self.assertEqual(pedido.referencia_pagamento, checkout.referencia)
        self.assertEqual(primeiro.liquidacao.pedido.id, segundo.liquidacao.pedido.id)
        self.assertEqual(pedido.itens.get().preco_unitario, Decimal('100000.00'))

        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 4)

        self.carrinho.refresh_from_db()
        self.assertFalse(self.carrinho.ativo)
        self.assertFalse(self.carrinho.itens.exists())

        intencao = IntencaoModel.objects.get(referencia_pagamento=checkout.referencia)
        self.assertEqual(intencao.estado_transacao, EstadoTransacao.APPROVED)
        self.assertEqual(intencao.id_transacao_provedor, '1234-1610641025-49201')

    def test_pedido_e_criado_como_pendente_e_confirmado_na_repeticao(self):
        checkout = self._criar_checkout()

        self._webhook(checkout.referencia, 'APPROVED')
        self.assertEqual(PedidoModel.objects.get().estado, EstadoPedido.PENDENTE)

        self._webhook(checkout.referencia, 'APPROVED')
        self.assertEqual(PedidoModel.objects.get().estado, EstadoPedido.CONFIRMADA)

    def test_notificacao_enviada_apos_commit(self):
        checkout = self._criar_checkout()

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            self._webhook(checkout.referencia, 'APPROVED')

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['ana@example.com'])
        self.assertIn(PedidoModel.objects.get().numero_pedido, mail.outbox[0].subject)

    def test_recusa_tardia_nao_reverte_pedido(self):
        """
        Cenário: DECLINED depois de APPROVED não cancela nem altera o pedido.
        """
        checkout = self._criar_checkout()
        self._webhook(checkout.referencia, 'APPROVED')

        self._webhook(checkout.referencia, 'DECLINED')

        intencao = IntencaoModel.objects.get(referencia_pagamento=checkout.referencia)
        self.assertEqual(intencao.estado_transacao, EstadoTransacao.APPROVED)
        self.assertEqual(PedidoModel.objects.get().estado, EstadoPedido.PENDENTE)
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 4)

    def test_primeiro_estado_terminal_vence(self):
        checkout = self._criar_checkout()

        self._webhook(checkout.referencia, 'DECLINED')
        with self.assertLogs('vitrine.operador', level='ERROR'):
            resultado = self._webhook(checkout.referencia, 'APPROVED')

        self.assertEqual(resultado.liquidacao.estado, EstadoTransacao.DECLINED)
        self.assertFalse(PedidoModel.objects.exists())
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 5)

    def test_estoque_esgotado_marca_intencao_como_erro(self):
        """
        Cenário: O produto esgota entre o checkout e a aprovação.
        Nenhum pedido é criado, o estoque não fica negativo e a intenção vai para ERROR.
        """
        # ARRANGE
        checkout = self._criar_checkout()
        ProdutoModel.objects.filter(pk=self.produto.pk).update(estoque=0)

        # ACT
        with self.assertLogs('vitrine.operador', level='ERROR'):
            resultado = self._webhook(checkout.referencia, 'APPROVED')

        # ASSERT
        self.assertTrue(resultado.falha_liquidacao)
        self.assertFalse(PedidoModel.objects.exists())
        intencao = IntencaoModel.objects.get(referencia_pagamento=checkout.referencia)
        self.assertEqual(intencao.estado_transacao, EstadoTransacao.ERROR)
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 0)
        self.carrinho.refresh_from_db()
        self.assertTrue(self.carrinho.ativo)

    def test_preco_alterado_marca_intencao_como_erro(self):
        checkout = self._criar_checkout()
        ProdutoModel.objects.filter(pk=self.produto.pk).update(preco=Decimal('120000.00'))

        with self.assertLogs('vitrine.operador', level='ERROR'):
            resultado = self._webhook(checkout.referencia, 'APPROVED')

        self.assertTrue(resultado.falha_liquidacao)
        self.assertFalse(PedidoModel.objects.exists())
        self.assertEqual(
            IntencaoModel.objects.get(referencia_pagamento=checkout.referencia).estado_transacao,
            EstadoTransacao.ERROR,
        )

    def test_cancelamento_devolve_estoque_uma_unica_vez(self):
        """
        Cenário: Cancelar devolve o estoque; cancelar de novo não devolve outra vez.
        """
        checkout = self._criar_checkout()
        self._webhook(checkout.referencia, 'APPROVED')
        pedido = PedidoModel.objects.get()
        cancelar = di.get_cancelar_pedido_use_case()

        primeiro = cancelar.executar(pedido.id, 'Cliente desistiu')
        segundo = cancelar.executar(pedido.id, 'Repetido')

        self.assertEqual(primeiro.estado, EstadoPedido.CANCELADA)
        self.assertEqual(segundo.estado, EstadoPedido.CANCELADA)
        self.assertEqual(segundo.motivo_cancelamento, 'Cliente desistiu')
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 5)

    def test_cancelamento_com_varios_itens(self):
        """
        Cenário: Pedido com (anel, 2) e (pulseira, 1).
        O cancelamento devolve 2 anéis e 1 pulseira.
        """
        # ARRANGE
        pulseira = ProdutoModel.objects.create(nome='Pulseira', preco=Decimal('50000.00'), estoque=2)
        self.carrinho.itens.filter(produto=self.produto).update(quantidade=2)
        ItemCarrinhoModel.objects.create(
            carrinho=self.carrinho, produto=pulseira, quantidade=1, preco_unitario=Decimal('50000.00')
        )
        checkout = self._criar_checkout()
        self._webhook(checkout.referencia, 'APPROVED')
        self.produto.refresh_from_db()
        pulseira.refresh_from_db()
        self.assertEqual((self.produto.estoque, pulseira.estoque), (3, 1))

        # ACT
        pedido = di.get_cancelar_pedido_use_case().executar(PedidoModel.objects.get().id)

        # ASSERT
        self.assertEqual(pedido.estado, EstadoPedido.CANCELADA)
        self.assertEqual(pedido.total, Decimal('268000.00'))
        self.produto.refresh_from_db()
        pulseira.refresh_from_db()
        self.assertEqual((self.produto.estoque, pulseira.estoque), (5, 2))

    def test_pedido_confirmado_nao_pode_ser_cancelado(self):
        checkout = self._criar_checkout()
        self._webhook(checkout.referencia, 'APPROVED')
        self._webhook(checkout.referencia, 'APPROVED')

        with self.assertRaises(TransicaoPedidoInvalidaError):
            self.ledger.cancelar(PedidoModel.objects.get().id, 'tarde demais')

        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 4)

    def test_aprovacao_tardia_pela_reconciliacao(self):
        """
        Cenário: Webhook nunca chegou; a intenção expirou mas o provedor aprovou.
        A reconciliação cria o pedido pelo mesmo coordenador.
        """
        # ARRANGE
        checkout = self._criar_checkout()
        IntencaoModel.objects.filter(referencia_pagamento=checkout.referencia).update(
            expira_em=timezone.now() - timedelta(minutes=30)
        )
        gateway = Mock()
        gateway.consultar_por_referencia.return_value = TransacaoPagamento(
            referencia=checkout.referencia, status='APPROVED', id_transacao_provedor='tx-tardia'
        )
        use_case = ReconciliarCheckoutsUseCase(
            intencao_repo=self.intencao_repo, gateway=gateway, coordenador=di.get_coordenador_liquidacao()
        )

        # ACT
        resumo = use_case.executar()

        # ASSERT
        self.assertEqual(resumo.aprovadas, 1)
        pedido = PedidoModel.objects.get()
        self.assertEqual(pedido.referencia_pagamento, checkout.referencia)
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 4)

    def test_aprovacao_depois_de_expirada_pela_reconciliacao_e_escalada(self):
        """
        Cenário: A reconciliação encerra a intenção expirada (ERROR) e depois chega um APPROVED assinado.
        Nenhum pedido é criado, o webhook é confirmado e os operadores são avisados.
        """
        # ARRANGE
        checkout = self._criar_checkout()
        IntencaoModel.objects.filter(referencia_pagamento=checkout.referencia).update(
            expira_em=timezone.now() - timedelta(minutes=30)
        )
        gateway = Mock()
        gateway.consultar_por_referencia.return_value = None
        ReconciliarCheckoutsUseCase(
            intencao_repo=self.intencao_repo, gateway=gateway, coordenador=di.get_coordenador_liquidacao()
        ).executar()

        # ACT
        with self.assertLogs('vitrine.operador', level='ERROR') as logs:
            resultado = self._webhook(checkout.referencia, 'APPROVED', id_transacao='tx-tardia')

        # ASSERT
        self.assertIn(checkout.referencia, logs.output[0])
        self.assertIn('tx-tardia', logs.output[0])
        self.assertEqual(resultado.liquidacao.estado, EstadoTransacao.ERROR)
        self.assertFalse(PedidoModel.objects.exists())

    def test_intencao_corrompida_nao_bloqueia_a_reconciliacao(self):
        """
        Cenário: Duas intenções pendentes; a mais antiga tem o snapshot do carrinho corrompido.
        A varredura segue, liquida a segunda e avisa os operadores sobre a primeira.
        """
        # ARRANGE
        corrompida = self._criar_checkout()
        boa = self._criar_checkout()
        IntencaoModel.objects.filter(referencia_pagamento=corrompida.referencia).update(dados_carrinho={'itens': []})
        gateway = Mock()
        gateway.consultar_por_referencia.side_effect = lambda referencia: TransacaoPagamento(
            referencia=referencia, status='APPROVED', id_transacao_provedor=f'tx-{referencia}'
        )
        use_case = ReconciliarCheckoutsUseCase(
            intencao_repo=self.intencao_repo, gateway=gateway, coordenador=di.get_coordenador_liquidacao()
        )

        # ACT
        with self.assertLogs('vitrine.operador', level='ERROR'):
            resumo = use_case.executar()

        # ASSERT
        self.assertEqual(resumo.verificadas, 2)
        self.assertEqual(resumo.erros, 1)
        self.assertEqual(resumo.aprovadas, 1)
        self.assertEqual(PedidoModel.objects.get().referencia_pagamento, boa.referencia)
        gateway.consultar_por_referencia.assert_called_once_with(boa.referencia)

    def test_reconciliacao_encerra_checkout_abandonado(self):
        checkout = self._criar_checkout()
        IntencaoModel.objects.filter(referencia_pagamento=checkout.referencia).update(
            expira_em=timezone.now() - timedelta(minutes=30)
        )
        gateway = Mock()
        gateway.consultar_por_referencia.return_value = None

        resumo = ReconciliarCheckoutsUseCase(
            intencao_repo=self.intencao_repo, gateway=gateway, coordenador=di.get_coordenador_liquidacao()
        ).executar()

        self.assertEqual(resumo.expiradas, 1)
        self.assertEqual(
            IntencaoModel.objects.get(referencia_pagamento=checkout.referencia).estado_transacao,
            EstadoTransacao.ERROR,
        )
        self.assertFalse(PedidoModel.objects.exists())


@skipUnless(connection.vendor == 'postgresql', 'Bloqueios de linha concorrentes exigem PostgreSQL.')
@override_settings(**CONFIGURACAO_TESTE)
class ConcorrenciaLiquidacaoTestCase(TransactionTestCase):
    """
    Confirmadores concorrentes em threads reais, cada uma com sua conexão.
    """

    def setUp(self):
        self.usuario = Usuario.objects.create_user(email='ana@example.com', password='senha-forte-123')
        self.produto = ProdutoModel.objects.create(nome='Anel de Prata', preco=Decimal('100000.00'), estoque=5)
        self.carrinho = CarrinhoModel.objects.create(usuario=self.usuario)
        ItemCarrinhoModel.objects.create(
            carrinho=self.carrinho, produto=self.produto, quantidade=1, preco_unitario=Decimal('100000.00')
        )

    def _criar_checkout(self):
        return di.get_criar_checkout_use_case().executar(usuario_id=self.usuario.id, metodo_pagamento='CARD')

    def _em_paralelo(self, tarefas):
        """Dispara as tarefas juntas e devolve (resultados, erros)."""
        barreira = Barrier(len(tarefas))
        resultados, erros = [], []

        def rodar(tarefa):
            try:
                barreira.wait()
                resultados.append(tarefa())
            except Exception as e:
                erros.append(e)
            finally:
                connection.close()

        threads = [Thread(target=rodar, args=(tarefa,)) for tarefa in tarefas]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return resultados, erros

    def test_confirmadores_simultaneos_criam_um_unico_pedido(self):
        """
        Cenário: Quatro confirmadores disputam a mesma intenção aprovada.
        Todos recebem o mesmo pedido e o estoque baixa uma única vez.
        """
        # ARRANGE
        checkout = self._criar_checkout()
        intencao = IntencaoModel.objects.get(referencia_pagamento=checkout.referencia)
        IntencaoModel.objects.filter(pk=intencao.pk).update(estado_transacao=EstadoTransacao.APPROVED)
        intencao_id = str(intencao.pk)

        # ACT
        resultados, erros = self._em_paralelo(
            [lambda: di.get_coordenador_liquidacao().confirmar(intencao_id) for _ in range(4)]
        )

        # ASSERT
        self.assertEqual(erros, [])
        self.assertEqual(PedidoModel.objects.count(), 1)
        self.assertEqual({pedido.id for pedido in resultados}, {PedidoModel.objects.get().id})
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 4)

    def test_ultima_unidade_disputada_por_duas_intencoes(self):
        """
        Cenário: Estoque 1 e dois checkouts do mesmo carrinho aprovados ao mesmo tempo.
        Um vira pedido; o outro vai para ERROR e o estoque nunca fica negativo.
        """
        # ARRANGE
        ProdutoModel.objects.filter(pk=self.produto.pk).update(estoque=1)
        referencias = [self._criar_checkout().referencia for _ in range(2)]
        coordenador = di.get_coordenador_liquidacao()

        def aprovar(referencia):
            intencao = instances.intencao_repo.buscar_por_referencia(referencia)
            return coordenador.aplicar_status(
                intencao, TransacaoPagamento(referencia, 'APPROVED', f'tx-{referencia}'), origem='webhook'
            )

        # ACT
        with self.assertLogs('vitrine', level='ERROR'):
            resultados, erros = self._em_paralelo([lambda r=r: aprovar(r) for r in referencias])

        # ASSERT
        self.assertEqual(len(resultados), 1)
        self.assertEqual(len(erros), 1)
        self.assertIsInstance(erros[0], ConflitoEstoqueError)
        pedido = PedidoModel.objects.get()
        self.assertEqual(pedido.referencia_pagamento, resultados[0].intencao.referencia)
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 0)
        perdedora = IntencaoModel.objects.exclude(referencia_pagamento=pedido.referencia_pagamento).get()
        self.assertEqual(perdedora.estado_transacao, EstadoTransacao.ERROR)


@override_settings(**CONFIGURACAO_TESTE)
class RepositoriosTestCase(TestCase):

    def setUp(self):
        self.usuario = Usuario.objects.create_user(email='bruno@example.com', password='senha-forte-123')
        self.ledger = LedgerPedidosDjango()
        self.intencao_repo = IntencaoCheckoutRepositoryDjango()

    def _pedido(self, numero, referencia):
        return PedidoModel.objects.create(
            numero_pedido=numero,
            usuario=self.usuario,
            total=Decimal('118000.00'),
            metodo_pagamento='CARD',
            referencia_pagamento=referencia,
        )

    def test_numero_do_pedido_segue_a_sequencia_do_dia(self):
        """
        Cenário: Já existem pedidos 0001 e 0007 no dia; o próximo é 0008.
        """
        dia = date(2024, 5, 1)
        self._pedido('ORD-20240501-0001', 'PED-A')
        self._pedido('ORD-20240501-0007', 'PED-B')
        self._pedido('ORD-20240430-0042', 'PED-C')

        self.assertEqual(self.ledger.gerar_numero_pedido(dia), 'ORD-20240501-0008')
        self.assertEqual(self.ledger.gerar_numero_pedido(date(2024, 5, 2)), 'ORD-20240502-0001')

    def test_atualizar_estado_de_intencao_inexistente(self):
        with self.assertRaises(IntencaoNaoEncontradaError):
            self.intencao_repo.atualizar_estado('00000000-0000-0000-0000-000000000000', 'APPROVED')
        with self.assertRaises(IntencaoNaoEncontradaError):
            self.intencao_repo.atualizar_estado('nao-e-uuid', 'APPROVED')

    def test_bloquear_aprovada_com_id_invalido(self):
        self.assertIsNone(self.intencao_repo.bloquear_aprovada('nao-e-uuid'))

    def test_servico_de_carrinho_detecta_falta_de_estoque(self):
        produto = ProdutoModel.objects.create(nome='Colar', preco=Decimal('250000.00'), estoque=1)
        carrinho = CarrinhoModel.objects.create(usuario=self.usuario)
        ItemCarrinhoModel.objects.create(carrinho=carrinho, produto=produto, quantidade=2,
                                         preco_unitario=Decimal('250000.00'))

        entidade = instances.carrinho_service.buscar_carrinho_ativo(self.usuario.id)
        validacao = instances.carrinho_service.validar_para_checkout(entidade)

        self.assertEqual(entidade.subtotal, Decimal('500000.00'))
        self.assertFalse(validacao.valido)
        self.assertEqual(len(validacao.erros), 1)

    def test_endereco_de_outro_usuario_nao_e_resolvido(self):
        outro = Usuario.objects.create_user(email='carla@example.com', password='senha-forte-123')
        endereco = Endereco.objects.create(
            usuario=outro, apelido='Casa', endereco='Calle 10 # 5-20', cidade='Cúcuta',
            departamento='Norte de Santander', telefone='3001234567',
        )

        self.assertIsNone(instances.perfil_service.endereco_envio(self.usuario.id, endereco.id))
        self.assertEqual(instances.perfil_service.endereco_envio(outro.id, endereco.id).cidade, 'Cúcuta')


@override_settings(**CONFIGURACAO_TESTE)
class CalculadoraFreteTestCase(TestCase):

    def test_tabela_por_cidade(self):
        calculadora = CalculadoraFreteTabela()
        self.assertEqual(calculadora.custo(Decimal('100000'), 'Cúcuta'), Decimal('12000.00'))
        self.assertEqual(calculadora.custo(Decimal('100000'), ' cucuta '), Decimal('12000.00'))
        self.assertEqual(calculadora.custo(Decimal('100000'), 'Bogotá'), Decimal('18000.00'))
        self.assertEqual(calculadora.custo(Decimal('100000'), None), Decimal('18000.00'))

    def test_frete_gratis_a_partir_do_limite(self):
        calculadora = CalculadoraFreteTabela()
        self.assertEqual(calculadora.custo(Decimal('300000'), 'Bogotá'), Decimal('0.00'))


class WompiGatewayTestCase(TestCase):
    """Gateway com uma sessão requests simulada."""

    def setUp(self):
        self.sessao = Mock()
        self.gateway = WompiGateway(
            chave_publica='pub_test_123', chave_privada='prv_test_456', ambiente='sandbox', timeout=5,
            sessao=self.sessao,
        )

    def _resposta(self, corpo, status_code=200):
        resposta = Mock(status_code=status_code)
        resposta.json.return_value = corpo
        if status_code >= 400:
            resposta.raise_for_status.side_effect = requests.exceptions.HTTPError(response=resposta)
        return resposta

    def test_consulta_por_id_usa_chave_publica(self):
        self.sessao.get.return_value = self._resposta({'data': {
            'id': '1234-1610641025-49201', 'reference': 'PED-ABCD1234-1700000000000',
            'status': 'approved', 'amount_in_cents': 11800000, 'currency': 'COP',
            'payment_method_type': 'CARD',
        }})

        transacao = self.gateway.consultar_transacao('1234-1610641025-49201')

        self.assertEqual(transacao.status, 'APPROVED')
        self.assertEqual(transacao.valor_centavos, 11800000)
        url = self.sessao.get.call_args[0][0]
        self.assertEqual(url, 'https://sandbox.wompi.co/v1/transactions/1234-1610641025-49201')
        self.assertEqual(self.sessao.get.call_args[1]['headers'], {'Authorization': 'Bearer pub_test_123'})

    def test_consulta_por_referencia_devolve_a_mais_recente(self):
        self.sessao.get.return_value = self._resposta({'data': [
            {'id': 'tx-1', 'reference': 'PED-X', 'status': 'DECLINED', 'created_at': '2024-05-01T10:00:00Z'},
            {'id': 'tx-2', 'reference': 'PED-X', 'status': 'APPROVED', 'created_at': '2024-05-01T10:05:00Z'},
        ]})

        transacao = self.gateway.consultar_por_referencia('PED-X')

        self.assertEqual(transacao.id_transacao_provedor, 'tx-2')
        self.assertEqual(self.sessao.get.call_args[1]['params'], {'reference': 'PED-X'})
        self.assertEqual(self.sessao.get.call_args[1]['headers'], {'Authorization': 'Bearer prv_test_456'})

    def test_consulta_por_referencia_sem_transacao(self):
        self.sessao.get.return_value = self._resposta({'data': []})
        self.assertIsNone(self.gateway.consultar_por_referencia('PED-X'))

    def test_erro_http_vira_erro_de_comunicacao(self):
        self.sessao.get.return_value = self._resposta({'error': {}}, status_code=503)

        with self.assertRaises(ComunicacaoProvedorError):
            self.gateway.consultar_transacao('tx-1')

    def test_falha_de_conexao_vira_erro_de_comunicacao(self):
        self.sessao.get.side_effect = requests.exceptions.ConnectionError('timeout')

        with self.assertRaises(ComunicacaoProvedorError):
            self.gateway.consultar_por_referencia('PED-X')

    def test_chave_ausente_e_erro_de_configuracao(self):
        gateway = WompiGateway(chave_publica='', chave_privada='', ambiente='sandbox', sessao=self.sessao)

        with self.assertRaises(ConfiguracaoInvalidaError):
            gateway.consultar_transacao('tx-1')
        self.sessao.get.assert_not_called()

    def test_ambiente_desconhecido(self):
        with self.assertRaises(ConfiguracaoInvalidaError):
            WompiGateway(ambiente='staging', sessao=self.sessao)

    def test_bancos_pse(self):
        self.sessao.get.return_value = self._resposta({'data': [
            {'financial_institution_code': '1022', 'financial_institution_name': 'BANCO UNION COLOMBIANO'},
        ]})

        self.assertEqual(
            self.gateway.listar_bancos_pse(), [{'codigo': '1022', 'nome': 'BANCO UNION COLOMBIANO'}]
        )


@override_settings(**CONFIGURACAO_TESTE)
class ComandoReconciliacaoTestCase(TestCase):

    @patch('vitrine.infrastructure.instances.get_gateway_pagamento')
    def test_uma_varredura_sem_pendentes(self, mock_gateway):
        saida = StringIO()

        call_command('reconciliar_checkouts', '--uma-vez', stdout=saida)

        self.assertIn('Verificadas: 0', saida.getvalue())
        mock_gateway.return_value.consultar_por_referencia.assert_not_called()

    @patch('vitrine.core.management.commands.reconciliar_checkouts.get_reconciliar_checkouts_use_case')
    def test_falha_na_varredura_nao_derruba_o_comando(self, mock_use_case):
        mock_use_case.return_value.executar.side_effect = RuntimeError('conexão perdida')
        erros = StringIO()

        with self.assertLogs('vitrine', level='ERROR'):
            call_command('reconciliar_checkouts', '--uma-vez', stdout=StringIO(), stderr=erros)

        self.assertIn('Varredura falhou', erros.getvalue())
