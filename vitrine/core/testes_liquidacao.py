# vitrine/core/testes_liquidacao.py

import unittest
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock, Mock

from vitrine.core.checkout_url import ConfiguracaoCheckout
from vitrine.core.entities import (
    Carrinho, EstadoPedido, EstadoTransacao, ItemCarrinho, NotificacaoPedido, Pedido,
    ResultadoLiquidacao, SnapshotComprador, SnapshotEnvio, TransacaoPagamento, ValidacaoCarrinho
)
from vitrine.core.exceptions import (
    AssinaturaInvalidaError, CarrinhoVazioError, ComunicacaoProvedorError, ConfiguracaoInvalidaError,
    DadosInvalidosError, EnderecoInvalidoError, EstoqueInsuficienteError, EventoInvalidoError,
    IntencaoNaoAprovadaError, IntencaoNaoEncontradaError, LiquidacaoDuplicadaError
)
from vitrine.core.liquidacao import CoordenadorLiquidacao
from vitrine.core.reconciliacao import ReconciliarCheckoutsUseCase
from vitrine.core.testes import criar_intencao, evento_assinado
from vitrine.core.use_cases import (
    ConsultarTempoRestanteUseCase, ConsultarTransacaoUseCase, CriarCheckoutUseCase,
    ProcessarWebhookUseCase, normalizar_evento
)

REFERENCIA = 'PED-ABCD1234-1700000000000'


def criar_pedido(estado=EstadoPedido.PENDENTE):
    return Pedido(
        id=99,
        numero_pedido='ORD-20240501-0001',
        usuario_id=1,
        estado=estado,
        subtotal=Decimal('100000.00'),
        desconto=Decimal('0.00'),
        custo_envio=Decimal('18000.00'),
        impostos=Decimal('0.00'),
        total=Decimal('118000.00'),
        metodo_pagamento='CARD',
        referencia_pagamento=REFERENCIA,
    )


def unidade_de_trabalho():
    """Mock da fronteira transacional: atomico() é um context manager e on_commit executa na hora."""
    uow = MagicMock()
    uow.apos_commit.side_effect = lambda callback: callback()
    return uow


# ====================================================================
# COORDENADOR DE LIQUIDAÇÃO
# ====================================================================

class TestCoordenadorLiquidacao(unittest.TestCase):

    def setUp(self):
        """
        Prepara o coordenador com repositório, ledger e notificador simulados.
        """
        self.intencao_repo = Mock()
        self.ledger = Mock()
        self.notificador = Mock()
        self.uow = unidade_de_trabalho()
        self.coordenador = CoordenadorLiquidacao(
            intencao_repo=self.intencao_repo,
            ledger=self.ledger,
            unidade_trabalho=self.uow,
            notificador=self.notificador,
        )
        self.aprovada = criar_intencao(estado=EstadoTransacao.APPROVED, id='intencao-1')

    def test_confirmar_cria_pedido_e_notifica(self):
        """
        Cenário: Primeira confirmação de uma intenção aprovada cria o pedido.
        """
        # ARRANGE
        self.intencao_repo.bloquear_aprovada.return_value = self.aprovada
        self.ledger.bloquear_por_referencia.return_value = None
        self.ledger.criar_a_partir_do_carrinho.return_value = criar_pedido()

        # ACT
        pedido = self.coordenador.confirmar('intencao-1')

        # ASSERT
        self.assertEqual(pedido.numero_pedido, 'ORD-20240501-0001')
        self.ledger.criar_a_partir_do_carrinho.assert_called_once_with(self.aprovada)
        self.notificador.notificar_mudanca_estado.assert_called_once_with(
            NotificacaoPedido(usuario_id=1, pedido_id=99, numero_pedido='ORD-20240501-0001',
                              novo_estado=EstadoPedido.PENDENTE)
        )

    def test_confirmar_intencao_nao_aprovada_falha(self):
        self.intencao_repo.bloquear_aprovada.return_value = None

        with self.assertRaises(IntencaoNaoAprovadaError):
            self.coordenador.confirmar('intencao-1')

        self.ledger.criar_a_partir_do_carrinho.assert_not_called()

    def test_confirmar_novamente_devolve_o_mesmo_pedido(self):
        """
        Cenário: Pedido já existe para a referência; nenhuma nova linha, 'pendente' vira 'confirmada'.
        """
        # ARRANGE
        existente = criar_pedido()
        self.intencao_repo.bloquear_aprovada.return_value = self.aprovada
        self.ledger.bloquear_por_referencia.return_value = existente
        self.ledger.atualizar_estado.return_value = replace(existente, estado=EstadoPedido.CONFIRMADA)

        # ACT
        pedido = self.coordenador.confirmar('intencao-1')

        # ASSERT
        self.assertEqual(pedido.id, existente.id)
        self.assertEqual(pedido.estado, EstadoPedido.CONFIRMADA)
        self.ledger.criar_a_partir_do_carrinho.assert_not_called()
        self.ledger.atualizar_estado.assert_called_once_with(99, EstadoPedido.CONFIRMADA)

    def test_confirmar_pedido_cancelado_nao_altera_nada(self):
        self.intencao_repo.bloquear_aprovada.return_value = self.aprovada
        self.ledger.bloquear_por_referencia.return_value = criar_pedido(EstadoPedido.CANCELADA)

        with self.assertLogs('vitrine.core.liquidacao', level='WARNING'):
            pedido = self.coordenador.confirmar('intencao-1')

        self.assertEqual(pedido.estado, EstadoPedido.CANCELADA)
        self.ledger.atualizar_estado.assert_not_called()
        self.notificador.notificar_mudanca_estado.assert_not_called()

    def test_insercao_concorrente_reutiliza_pedido_existente(self):
        """
        Cenário: Outro confirmador inseriu o pedido primeiro (violação da chave única).
        """
        existente = criar_pedido(EstadoPedido.CONFIRMADA)
        self.intencao_repo.bloquear_aprovada.return_value = self.aprovada
        self.ledger.bloquear_por_referencia.side_effect = [None, existente]
        self.ledger.criar_a_partir_do_carrinho.side_effect = LiquidacaoDuplicadaError(REFERENCIA)

        pedido = self.coordenador.confirmar('intencao-1')

        self.assertEqual(pedido.id, existente.id)
        self.assertEqual(self.ledger.bloquear_por_referencia.call_count, 2)

    def test_falha_no_notificador_nao_desfaz_a_liquidacao(self):
        self.intencao_repo.bloquear_aprovada.return_value = self.aprovada
        self.ledger.bloquear_por_referencia.return_value = None
        self.ledger.criar_a_partir_do_carrinho.return_value = criar_pedido()
        self.notificador.notificar_mudanca_estado.side_effect = RuntimeError('smtp fora do ar')

        with self.assertLogs('vitrine.core.liquidacao', level='ERROR'):
            pedido = self.coordenador.confirmar('intencao-1')

        self.assertEqual(pedido.id, 99)

    def test_aplicar_aprovacao_liquida(self):
        """
        Cenário: Status APPROVED grava a transição e cria o pedido.
        """
        # ARRANGE
        pendente = criar_intencao(id='intencao-1')
        self.intencao_repo.atualizar_estado.return_value = (self.aprovada, True)
        self.intencao_repo.bloquear_aprovada.return_value = self.aprovada
        self.ledger.bloquear_por_referencia.return_value = None
        self.ledger.criar_a_partir_do_carrinho.return_value = criar_pedido()
        transacao = TransacaoPagamento(REFERENCIA, 'APPROVED', id_transacao_provedor='tx-1')

        # ACT
        resultado = self.coordenador.aplicar_status(pendente, transacao, origem='webhook')

        # ASSERT
        self.intencao_repo.atualizar_estado.assert_called_once_with('intencao-1', 'APPROVED', 'tx-1')
        self.assertTrue(resultado.mudou_estado)
        self.assertEqual(resultado.pedido.id, 99)

    def test_conflito_de_estoque_marca_erro_e_propaga(self):
        """
        Cenário: Estoque esgotado no momento da confirmação: intenção vai para ERROR, nenhum pedido.
        """
        pendente = criar_intencao(id='intencao-1')
        self.intencao_repo.atualizar_estado.return_value = (self.aprovada, True)
        self.intencao_repo.bloquear_aprovada.return_value = self.aprovada
        self.ledger.bloquear_por_referencia.return_value = None
        self.ledger.criar_a_partir_do_carrinho.side_effect = EstoqueInsuficienteError(7, 0, 1)

        with self.assertRaises(EstoqueInsuficienteError):
            self.coordenador.aplicar_status(
                pendente, TransacaoPagamento(REFERENCIA, 'APPROVED'), origem='webhook'
            )

        self.intencao_repo.registrar_falha_liquidacao.assert_called_once_with('intencao-1')
        self.notificador.notificar_mudanca_estado.assert_not_called()

    def test_recusa_tardia_nao_reverte_aprovacao(self):
        """
        Cenário: DECLINED chega depois de APPROVED; o primeiro estado terminal vence.
        """
        self.intencao_repo.atualizar_estado.return_value = (self.aprovada, False)

        with self.assertLogs('vitrine.core.liquidacao', level='WARNING'):
            resultado = self.coordenador.aplicar_status(
                self.aprovada, TransacaoPagamento(REFERENCIA, 'DECLINED'), origem='webhook'
            )

        self.assertEqual(resultado.estado, EstadoTransacao.APPROVED)
        self.ledger.cancelar.assert_not_called()
        self.ledger.criar_a_partir_do_carrinho.assert_not_called()

    def test_aprovacao_apos_recusa_vai_para_os_operadores(self):
        """
        Cenário: APPROVED chega para uma intenção já DECLINED.
        Nenhum pedido é criado e o caso é escalado ao canal de operadores.
        """
        recusada = criar_intencao(estado=EstadoTransacao.DECLINED, id='intencao-1')
        self.intencao_repo.atualizar_estado.return_value = (recusada, False)

        with self.assertLogs('vitrine.operador', level='ERROR') as logs:
            resultado = self.coordenador.aplicar_status(
                recusada, TransacaoPagamento(REFERENCIA, 'APPROVED', 'tx-9'), origem='reconciliacao'
            )

        self.assertIn('tx-9', logs.output[0])

        self.assertEqual(resultado.estado, EstadoTransacao.DECLINED)
        self.assertIsNone(resultado.pedido)
        self.intencao_repo.bloquear_aprovada.assert_not_called()

    def test_status_desconhecido_e_rejeitado(self):
        with self.assertRaises(EventoInvalidoError):
            self.coordenador.aplicar_status(
                criar_intencao(), TransacaoPagamento(REFERENCIA, 'REFUNDED'), origem='webhook'
            )
        self.intencao_repo.atualizar_estado.assert_not_called()


# ====================================================================
# WEBHOOK
# ====================================================================

class TestProcessarWebhook(unittest.TestCase):

    def setUp(self):
        self.intencao_repo = Mock()
        self.coordenador = Mock()
        self.use_case = ProcessarWebhookUseCase(
            intencao_repo=self.intencao_repo,
            coordenador=self.coordenador,
            segredo_eventos='test_events',
        )

    def test_evento_valido_aplica_status(self):
        # ARRANGE
        intencao = criar_intencao(id='intencao-1')
        self.intencao_repo.buscar_por_referencia.return_value = intencao
        self.coordenador.aplicar_status.return_value = ResultadoLiquidacao(intencao, 'APPROVED')

        # ACT
        resultado = self.use_case.executar(evento_assinado(), {})

        # ASSERT
        self.assertTrue(resultado.intencao_encontrada)
        args, kwargs = self.coordenador.aplicar_status.call_args
        self.assertEqual(args[0], intencao)
        self.assertEqual(args[1].status, 'APPROVED')
        self.assertEqual(args[1].id_transacao_provedor, '1234-1610641025-49201')
        self.assertEqual(kwargs['origem'], 'webhook')

    def test_assinatura_invalida_nao_toca_o_banco(self):
        """
        Cenário: Evento com checksum inválido é rejeitado antes de qualquer consulta.
        """
        with self.assertRaises(AssinaturaInvalidaError):
            self.use_case.executar(evento_assinado(segredo='forjado'), {})

        self.intencao_repo.buscar_por_referencia.assert_not_called()
        self.coordenador.aplicar_status.assert_not_called()

    def test_referencia_desconhecida_e_confirmada_sem_acao(self):
        self.intencao_repo.buscar_por_referencia.return_value = None

        resultado = self.use_case.executar(evento_assinado(), {})

        self.assertFalse(resultado.intencao_encontrada)
        self.coordenador.aplicar_status.assert_not_called()

    def test_falha_de_liquidacao_e_absorvida_e_escalada(self):
        """
        Cenário: Erro ao liquidar não volta ao provedor; vai para o canal de operadores.
        """
        self.intencao_repo.buscar_por_referencia.return_value = criar_intencao(id='intencao-1')
        self.coordenador.aplicar_status.side_effect = EstoqueInsuficienteError(7, 0, 1)

        with self.assertLogs('vitrine.operador', level='ERROR'):
            resultado = self.use_case.executar(evento_assinado(), {})

        self.assertTrue(resultado.falha_liquidacao)

    def test_evento_sem_referencia_e_invalido(self):
        payload = evento_assinado()
        payload['data']['transaction'].pop('reference')
        with self.assertRaises(EventoInvalidoError):
            self.use_case.executar(payload, {})

    def test_verificacao_desligada(self):
        use_case = ProcessarWebhookUseCase(self.intencao_repo, self.coordenador, None, ignorar_assinatura=True)
        self.intencao_repo.buscar_por_referencia.return_value = None

        with self.assertLogs('vitrine.core.use_cases', level='WARNING'):
            resultado = use_case.executar(evento_assinado(segredo='qualquer'), {})

        self.assertEqual(resultado.status, 'APPROVED')

    def test_normalizar_evento(self):
        transacao = normalizar_evento(evento_assinado(status='DECLINED'))
        self.assertEqual(transacao.referencia, REFERENCIA)
        self.assertEqual(transacao.status, 'DECLINED')
        self.assertEqual(transacao.valor_centavos, 11800000)
        self.assertEqual(transacao.metodo_pagamento, 'CARD')
        self.assertEqual(transacao.evento, 'transaction.updated')

        with self.assertRaises(EventoInvalidoError):
            normalizar_evento({'data': {}})


# ====================================================================
# RECONCILIAÇÃO
# ====================================================================

class TestReconciliarCheckouts(unittest.TestCase):

    def setUp(self):
        self.agora = datetime(2024, 5, 1, 13, 0, tzinfo=timezone.utc)
        self.intencao_repo = Mock()
        self.gateway = Mock()
        self.coordenador = Mock()
        self.use_case = ReconciliarCheckoutsUseCase(
            intencao_repo=self.intencao_repo,
            gateway=self.gateway,
            coordenador=self.coordenador,
            relogio=lambda: self.agora,
        )

    def _pendentes(self, *intencoes):
        por_id = {intencao.id: intencao for intencao in intencoes}
        self.intencao_repo.listar_ids_pendentes.return_value = list(por_id)
        self.intencao_repo.buscar_por_id.side_effect = por_id.get

    def test_seleciona_pendentes_da_janela(self):
        self._pendentes()

        self.use_case.executar()

        self.intencao_repo.listar_ids_pendentes.assert_called_once_with(self.agora - timedelta(hours=24), 200)

    def test_aprovacao_tardia_e_liquidada(self):
        """
        Cenário: Webhook perdido; o provedor informa APPROVED para uma intenção já expirada.
        """
        # ARRANGE
        intencao = criar_intencao(id='intencao-1', expira_em=self.agora - timedelta(minutes=30))
        self._pendentes(intencao)
        transacao = TransacaoPagamento(REFERENCIA, 'APPROVED', id_transacao_provedor='tx-1')
        self.gateway.consultar_por_referencia.return_value = transacao
        self.coordenador.aplicar_status.return_value = ResultadoLiquidacao(intencao, 'APPROVED')

        # ACT
        resumo = self.use_case.executar()

        # ASSERT
        self.coordenador.aplicar_status.assert_called_once_with(intencao, transacao, origem='reconciliacao')
        self.assertEqual(resumo.aprovadas, 1)
        self.assertEqual(resumo.verificadas, 1)

    def test_consulta_pelo_id_da_transacao_quando_conhecido(self):
        intencao = criar_intencao(id='intencao-1', id_transacao_provedor='tx-1')
        self._pendentes(intencao)
        self.gateway.consultar_transacao.return_value = TransacaoPagamento(REFERENCIA, 'PENDING', 'tx-1')
        self.coordenador.aplicar_status.return_value = ResultadoLiquidacao(intencao, 'PENDING')

        resumo = self.use_case.executar()

        self.gateway.consultar_transacao.assert_called_once_with('tx-1')
        self.gateway.consultar_por_referencia.assert_not_called()
        self.assertEqual(resumo.pendentes, 1)

    def test_expirada_sem_transacao_vira_erro(self):
        intencao = criar_intencao(id='intencao-1', expira_em=self.agora - timedelta(minutes=1))
        self._pendentes(intencao)
        self.gateway.consultar_por_referencia.return_value = None

        resumo = self.use_case.executar()

        transacao = self.coordenador.aplicar_status.call_args[0][1]
        self.assertEqual(transacao.status, EstadoTransacao.ERROR)
        self.assertEqual(resumo.expiradas, 1)

    def test_nao_expirada_sem_transacao_continua_pendente(self):
        intencao = criar_intencao(id='intencao-1', expira_em=self.agora + timedelta(minutes=5))
        self._pendentes(intencao)
        self.gateway.consultar_por_referencia.return_value = None

        resumo = self.use_case.executar()

        self.coordenador.aplicar_status.assert_not_called()
        self.assertEqual(resumo.pendentes, 1)

    def test_erro_em_uma_intencao_nao_interrompe_a_varredura(self):
        """
        Cenário: Falha de comunicação e erro inesperado são contados; as demais seguem.
        """
        # ARRANGE
        intencoes = [
            criar_intencao(referencia='PED-A', id='a'),
            criar_intencao(referencia='PED-B', id='b'),
            criar_intencao(referencia='PED-C', id='c'),
        ]
        self._pendentes(*intencoes)
        self.gateway.consultar_por_referencia.side_effect = [
            ComunicacaoProvedorError(status_code=503),
            TransacaoPagamento('PED-B', 'APPROVED'),
            TransacaoPagamento('PED-C', 'DECLINED'),
        ]
        self.coordenador.aplicar_status.side_effect = [
            RuntimeError('deadlock'),
            ResultadoLiquidacao(intencoes[2], 'DECLINED'),
        ]

        # ACT
        with self.assertLogs('vitrine.core.reconciliacao', level='WARNING'):
            resumo = self.use_case.executar()

        # ASSERT
        self.assertEqual(resumo.verificadas, 3)
        self.assertEqual(resumo.erros, 2)
        self.assertEqual(resumo.rejeitadas, 1)

    def test_intencao_com_dados_corrompidos_nao_interrompe_a_varredura(self):
        """
        Cenário: A primeira intenção tem o snapshot corrompido; a segunda foi aprovada.
        A corrompida vai para o canal de operadores e a segunda é liquidada.
        """
        # ARRANGE
        boa = criar_intencao(referencia='PED-B', id='b')
        self.intencao_repo.listar_ids_pendentes.return_value = ['a', 'b']
        self.intencao_repo.buscar_por_id.side_effect = [
            DadosInvalidosError("Snapshot do carrinho sem itens."),
            boa,
        ]
        self.gateway.consultar_por_referencia.return_value = TransacaoPagamento('PED-B', 'APPROVED', 'tx-b')
        self.coordenador.aplicar_status.return_value = ResultadoLiquidacao(boa, 'APPROVED')

        # ACT
        with self.assertLogs('vitrine.operador', level='ERROR') as logs:
            resumo = self.use_case.executar()

        # ASSERT
        self.assertIn('Intenção a não pode ser reconciliada', logs.output[0])
        self.coordenador.aplicar_status.assert_called_once()
        self.assertEqual(resumo.verificadas, 2)
        self.assertEqual(resumo.erros, 1)
        self.assertEqual(resumo.aprovadas, 1)

    def test_intencao_que_deixou_de_estar_pendente_e_pulada(self):
        self._pendentes(criar_intencao(id='a', estado=EstadoTransacao.DECLINED))

        resumo = self.use_case.executar()

        self.gateway.consultar_por_referencia.assert_not_called()
        self.assertEqual(resumo.erros, 0)

    def test_execucao_sobreposta_e_ignorada(self):
        ReconciliarCheckoutsUseCase._em_execucao.acquire()
        try:
            resumo = self.use_case.executar()
        finally:
            ReconciliarCheckoutsUseCase._em_execucao.release()

        self.assertTrue(resumo.ignorada)
        self.intencao_repo.listar_ids_pendentes.assert_not_called()


# ====================================================================
# CRIAÇÃO DO CHECKOUT
# ====================================================================

class TestCriarCheckout(unittest.TestCase):

    def setUp(self):
        self.carrinho_service = Mock()
        self.perfil_service = Mock()
        self.calculadora_frete = Mock()
        self.intencao_repo = Mock()
        self.intencao_repo.criar.side_effect = lambda intencao: intencao
        self.config = ConfiguracaoCheckout(chave_publica='pub_test_123', segredo_integridade='test_integrity')
        self.use_case = CriarCheckoutUseCase(
            carrinho_service=self.carrinho_service,
            perfil_service=self.perfil_service,
            calculadora_frete=self.calculadora_frete,
            intencao_repo=self.intencao_repo,
            config=self.config,
            expiracao_minutos={'default': 15, 'PSE': 30},
        )

        self.carrinho_service.buscar_carrinho_ativo.return_value = Carrinho(
            id=10, usuario_id=1, itens=[ItemCarrinho(7, 'Anel', 1, Decimal('100000'))]
        )
        self.carrinho_service.validar_para_checkout.return_value = ValidacaoCarrinho(valido=True)
        self.perfil_service.dados_comprador.return_value = SnapshotComprador(
            usuario_id=1, email='ana@example.com', nome_completo='Ana Gómez'
        )
        self.calculadora_frete.custo.return_value = Decimal('18000')

    def test_checkout_cria_intencao_pendente(self):
        """
        Cenário: Carrinho de 100.000 + frete de 18.000 gera intenção de 118.000 e URL assinada.
        """
        # ACT
        checkout = self.use_case.executar(usuario_id=1, metodo_pagamento='card')

        # ASSERT
        self.assertEqual(checkout.total, Decimal('118000.00'))
        self.assertEqual(checkout.valor_centavos, 11800000)
        self.assertIn(f'reference={checkout.referencia}', checkout.url_checkout)
        intencao = self.intencao_repo.criar.call_args[0][0]
        self.assertEqual(intencao.estado, EstadoTransacao.PENDING)
        self.assertEqual(intencao.metodo_pagamento, 'CARD')
        self.assertEqual(intencao.dados_carrinho.custo_envio, Decimal('18000.00'))
        self.assertEqual(intencao.expira_em - intencao.criado_em, timedelta(minutes=15))

    def test_expiracao_por_metodo(self):
        self.assertEqual(self.use_case.minutos_expiracao('PSE'), 30)
        self.assertEqual(self.use_case.minutos_expiracao('NEQUI'), 15)

    def test_carrinho_vazio(self):
        self.carrinho_service.buscar_carrinho_ativo.return_value = Carrinho(id=10, usuario_id=1, itens=[])
        with self.assertRaises(CarrinhoVazioError):
            self.use_case.executar(usuario_id=1, metodo_pagamento='CARD')
        self.intencao_repo.criar.assert_not_called()

    def test_carrinho_invalido(self):
        self.carrinho_service.validar_para_checkout.return_value = ValidacaoCarrinho(
            valido=False, erros=['Estoque insuficiente para Anel (disponível: 0).']
        )
        with self.assertRaises(DadosInvalidosError):
            self.use_case.executar(usuario_id=1, metodo_pagamento='CARD')
        self.intencao_repo.criar.assert_not_called()

    def test_metodo_nao_suportado(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.executar(usuario_id=1, metodo_pagamento='BITCOIN')

    def test_endereco_de_outro_usuario(self):
        self.perfil_service.endereco_envio.return_value = None
        with self.assertRaises(EnderecoInvalidoError):
            self.use_case.executar(usuario_id=1, metodo_pagamento='CARD', endereco_envio_id=55)

    def test_frete_usa_a_cidade_do_endereco(self):
        self.perfil_service.endereco_envio.return_value = SnapshotEnvio(endereco_id=55, cidade='Cúcuta')
        self.calculadora_frete.custo.return_value = Decimal('12000')

        checkout = self.use_case.executar(usuario_id=1, metodo_pagamento='CARD', endereco_envio_id=55)

        self.calculadora_frete.custo.assert_called_once_with(Decimal('100000.00'), 'Cúcuta')
        self.assertEqual(checkout.total, Decimal('112000.00'))

    def test_valor_abaixo_do_minimo(self):
        self.carrinho_service.buscar_carrinho_ativo.return_value = Carrinho(
            id=10, usuario_id=1, itens=[ItemCarrinho(7, 'Brinco', 1, Decimal('500'))]
        )
        self.calculadora_frete.custo.return_value = Decimal('0')

        with self.assertRaises(DadosInvalidosError):
            self.use_case.executar(usuario_id=1, metodo_pagamento='CARD')
        self.intencao_repo.criar.assert_not_called()

    def test_configuracao_invalida_nao_deixa_intencao_orfa(self):
        self.config.segredo_integridade = ''
        with self.assertRaises(ConfiguracaoInvalidaError):
            self.use_case.executar(usuario_id=1, metodo_pagamento='CARD')
        self.intencao_repo.criar.assert_not_called()


# ====================================================================
# CONSULTAS DO COMPRADOR
# ====================================================================

class TestConsultas(unittest.TestCase):

    def setUp(self):
        self.gateway = Mock()
        self.intencao_repo = Mock()
        self.coordenador = Mock()

    def test_consulta_manual_usa_o_coordenador(self):
        intencao = criar_intencao(id='intencao-1')
        self.gateway.consultar_transacao.return_value = TransacaoPagamento(REFERENCIA, 'APPROVED')
        self.intencao_repo.buscar_por_referencia.return_value = intencao
        use_case = ConsultarTransacaoUseCase(self.gateway, self.intencao_repo, self.coordenador)

        use_case.executar('tx-1', usuario_id=1)

        args, kwargs = self.coordenador.aplicar_status.call_args
        self.assertEqual(args[1].id_transacao_provedor, 'tx-1')
        self.assertEqual(kwargs, {'origem': 'consulta_manual'})

    def test_consulta_manual_de_outro_comprador(self):
        self.gateway.consultar_transacao.return_value = TransacaoPagamento(REFERENCIA, 'APPROVED')
        self.intencao_repo.buscar_por_referencia.return_value = criar_intencao(id='intencao-1')
        use_case = ConsultarTransacaoUseCase(self.gateway, self.intencao_repo, self.coordenador)

        with self.assertRaises(IntencaoNaoEncontradaError):
            use_case.executar('tx-1', usuario_id=2)
        self.coordenador.aplicar_status.assert_not_called()

    def test_tempo_restante(self):
        expira_em = datetime(2024, 5, 1, 12, 15, tzinfo=timezone.utc)
        self.intencao_repo.buscar_por_referencia.return_value = criar_intencao(expira_em=expira_em)
        use_case = ConsultarTempoRestanteUseCase(self.intencao_repo)

        tempo = use_case.executar(REFERENCIA, 1, agora=expira_em - timedelta(seconds=90))

        self.assertEqual(tempo.segundos_restantes, 90)
        self.assertFalse(tempo.expirada)
        self.assertEqual(tempo.estado, EstadoTransacao.PENDING)
