# vitrine/core/testes.py

import hashlib
import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from urllib.parse import parse_qsl, urlsplit

# Importamos as funções que queremos testar
from vitrine.core.assinatura import (
    assinar, calcular_checksum_evento, extrair_assinatura, propriedades_assinadas, verificar_webhook
)
from vitrine.core.checkout_url import (
    ConfiguracaoCheckout, construir_url_checkout, formatar_expiracao, gerar_referencia,
    validar_referencia, validar_url_externa
)
from vitrine.core.entities import (
    IntencaoCheckout, ItemSnapshot, SnapshotCarrinho, SnapshotComprador, SnapshotEnvio
)
from vitrine.core.exceptions import ConfiguracaoInvalidaError, DadosInvalidosError


def _sha256(texto):
    return hashlib.sha256(texto.encode('utf-8')).hexdigest()


def evento_assinado(referencia='PED-ABCD1234-1700000000000', status='APPROVED', segredo='test_events',
                    id_transacao='1234-1610641025-49201', valor=11800000, timestamp=1530291411):
    """Evento de transação no formato da Wompi, com checksum calculado sobre id, status e valor."""
    propriedades = ['transaction.id', 'transaction.status', 'transaction.amount_in_cents']
    checksum = _sha256(f"{id_transacao}{status}{valor}{timestamp}{segredo}")
    return {
        'event': 'transaction.updated',
        'data': {
            'transaction': {
                'id': id_transacao,
                'reference': referencia,
                'status': status,
                'amount_in_cents': valor,
                'currency': 'COP',
                'payment_method_type': 'CARD',
            }
        },
        'signature': {'properties': propriedades, 'checksum': checksum},
        'timestamp': timestamp,
    }


def criar_intencao(referencia='PED-ABCD1234-1700000000000', expira_em=None, **kwargs):
    snapshot = SnapshotCarrinho(
        carrinho_id=10,
        itens=[ItemSnapshot(7, 'Anel', 1, Decimal('100000.00'), Decimal('100000.00'))],
        subtotal=Decimal('100000.00'),
        custo_envio=Decimal('18000.00'),
        total=Decimal('118000.00'),
    )
    comprador = SnapshotComprador(usuario_id=1, email='ana@example.com', nome_completo='Ana Gómez')
    return IntencaoCheckout(
        referencia=referencia,
        usuario_id=1,
        carrinho_id=10,
        metodo_pagamento='CARD',
        dados_carrinho=snapshot,
        dados_comprador=comprador,
        expira_em=expira_em or datetime(2024, 5, 1, 12, 15, tzinfo=timezone.utc),
        **kwargs
    )


# ====================================================================
# MOTOR DE ASSINATURAS
# ====================================================================

class TestAssinatura(unittest.TestCase):

    def test_assinatura_concatena_campos_na_ordem(self):
        """
        Cenário: A assinatura é o SHA-256 de referência + valor + moeda + segredo.
        """
        # ACT
        assinatura = assinar('PED-1', 11800000, 'COP', 'test_integrity')

        # ASSERT
        self.assertEqual(assinatura, _sha256('PED-111800000COPtest_integrity'))
        self.assertEqual(len(assinatura), 64)

    def test_assinatura_inclui_expiracao_quando_informada(self):
        """
        Cenário: A data de expiração entra entre a moeda e o segredo.
        """
        expiracao = '2024-05-01T12:15:00.000Z'
        assinatura = assinar('PED-1', 11800000, 'COP', 'segredo', expiracao=expiracao)
        self.assertEqual(assinatura, _sha256(f'PED-111800000COP{expiracao}segredo'))
        self.assertNotEqual(assinatura, assinar('PED-1', 11800000, 'COP', 'segredo'))

    def test_segredo_vazio_recusa_assinar(self):
        """
        Cenário: Sem segredo configurado a assinatura é recusada, nunca calculada com string vazia.
        """
        for segredo in ('', None, '   '):
            with self.assertRaises(ConfiguracaoInvalidaError):
                assinar('PED-1', 11800000, 'COP', segredo)

    def test_valor_nao_inteiro_e_rejeitado(self):
        """
        Cenário: O valor precisa ser o mesmo inteiro enviado em amount-in-cents.
        """
        for valor in (Decimal('118000.00'), 118000.0, '11800000', True):
            with self.assertRaises(DadosInvalidosError):
                assinar('PED-1', valor, 'COP', 'segredo')

    def test_webhook_valido_e_aceito(self):
        # ARRANGE
        payload = evento_assinado()
        assinatura = extrair_assinatura(payload, {})

        # ACT / ASSERT
        self.assertTrue(verificar_webhook(payload, assinatura, propriedades_assinadas(payload), 'test_events'))

    def test_checksum_em_maiusculas_e_aceito(self):
        payload = evento_assinado()
        assinatura = payload['signature']['checksum'].upper()
        self.assertTrue(verificar_webhook(payload, assinatura, propriedades_assinadas(payload), 'test_events'))

    def test_webhook_adulterado_e_rejeitado(self):
        """
        Cenário: Alterar o valor depois de assinado invalida o checksum.
        """
        payload = evento_assinado()
        payload['data']['transaction']['amount_in_cents'] = 100
        assinatura = extrair_assinatura(payload, {})
        self.assertFalse(verificar_webhook(payload, assinatura, propriedades_assinadas(payload), 'test_events'))

    def test_webhook_com_segredo_errado_e_rejeitado(self):
        payload = evento_assinado(segredo='outro')
        self.assertFalse(
            verificar_webhook(payload, extrair_assinatura(payload, {}), propriedades_assinadas(payload), 'test_events')
        )

    def test_webhook_sem_segredo_configurado_falha_fechado(self):
        payload = evento_assinado()
        with self.assertLogs('vitrine.core.assinatura', level='ERROR'):
            resultado = verificar_webhook(
                payload, extrair_assinatura(payload, {}), propriedades_assinadas(payload), ''
            )
        self.assertFalse(resultado)

    def test_propriedade_ausente_invalida_o_checksum(self):
        payload = evento_assinado()
        del payload['data']['transaction']['status']
        self.assertIsNone(calcular_checksum_evento(payload, propriedades_assinadas(payload), 'test_events'))

    def test_timestamp_ausente_invalida_o_checksum(self):
        payload = evento_assinado()
        del payload['timestamp']
        self.assertFalse(
            verificar_webhook(payload, extrair_assinatura(payload, {}), propriedades_assinadas(payload), 'test_events')
        )

    def test_cabecalho_tem_precedencia_sobre_o_corpo(self):
        """
        Cenário: O checksum do cabeçalho X-Event-Checksum prevalece sobre signature.checksum.
        """
        payload = evento_assinado()
        correto = payload['signature']['checksum']
        payload['signature']['checksum'] = '0' * 64

        assinatura = extrair_assinatura(payload, {'X-Event-Checksum': correto})

        self.assertEqual(assinatura, correto)
        self.assertTrue(verificar_webhook(payload, assinatura, propriedades_assinadas(payload), 'test_events'))

    def test_assinatura_ausente_e_rejeitada(self):
        payload = evento_assinado()
        del payload['signature']['checksum']
        self.assertIsNone(extrair_assinatura(payload, {}))
        self.assertFalse(verificar_webhook(payload, None, propriedades_assinadas(payload), 'test_events'))


# ====================================================================
# CONSTRUTOR DA URL DE CHECKOUT
# ====================================================================

class TestConstruirUrlCheckout(unittest.TestCase):

    def setUp(self):
        self.config = ConfiguracaoCheckout(
            chave_publica='pub_test_123',
            segredo_integridade='test_integrity',
            url_redirecionamento='https://loja.example.co/pagamento/retorno',
        )
        self.intencao = criar_intencao()
        self.comprador = SnapshotComprador(
            usuario_id=1,
            email='ana@example.com',
            nome_completo='Ana Gómez',
            telefone='300 123 4567',
            prefixo_telefone='57',
            tipo_documento='CC',
            numero_documento='1090123456',
        )

    def _parametros(self, url):
        return dict(parse_qsl(urlsplit(url).query))

    def test_url_contem_parametros_assinados(self):
        """
        Cenário: A URL leva chave pública, valor, referência e a assinatura com expiração.
        """
        # ACT
        url = construir_url_checkout(self.intencao, self.comprador, None, 11800000, self.config)

        # ASSERT
        self.assertTrue(url.startswith('https://checkout.wompi.co/p/?public-key=pub_test_123'))
        self.assertIn('signature:integrity=', url)
        parametros = self._parametros(url)
        self.assertEqual(parametros['amount-in-cents'], '11800000')
        self.assertEqual(parametros['currency'], 'COP')
        self.assertEqual(parametros['reference'], self.intencao.referencia)
        self.assertEqual(parametros['expiration-time'], '2024-05-01T12:15:00.000Z')
        self.assertEqual(parametros['redirect-url'], self.config.url_redirecionamento)
        self.assertEqual(
            parametros['signature:integrity'],
            assinar(self.intencao.referencia, 11800000, 'COP', 'test_integrity', '2024-05-01T12:15:00.000Z'),
        )

    def test_dados_do_comprador_normalizados(self):
        url = construir_url_checkout(self.intencao, self.comprador, None, 11800000, self.config)
        parametros = self._parametros(url)
        self.assertEqual(parametros['customer-data:phone-number'], '3001234567')
        self.assertEqual(parametros['customer-data:phone-number-prefix'], '+57')
        self.assertEqual(parametros['customer-data:legal-id'], '1090123456')
        self.assertEqual(parametros['customer-data:legal-id-type'], 'CC')

    def test_telefone_sem_prefixo_e_omitido(self):
        self.comprador.prefixo_telefone = None
        url = construir_url_checkout(self.intencao, self.comprador, None, 11800000, self.config)
        self.assertNotIn('customer-data:phone-number', url)

    def test_bloco_de_envio_incompleto_e_omitido(self):
        """
        Cenário: Cidade presente mas telefone ausente: nenhum parâmetro shipping-address é enviado.
        """
        envio = SnapshotEnvio(endereco='Calle 10 # 5-20', cidade='Cúcuta', departamento='Norte de Santander', pais='CO')
        url = construir_url_checkout(self.intencao, self.comprador, envio, 11800000, self.config)
        self.assertNotIn('shipping-address', url)

    def test_bloco_de_envio_completo(self):
        envio = SnapshotEnvio(
            endereco='Calle 10 # 5-20', cidade='Cúcuta', departamento='Norte de Santander', pais='CO',
            telefone='3001234567', nome_destinatario='Ana Gómez',
        )
        parametros = self._parametros(
            construir_url_checkout(self.intencao, self.comprador, envio, 11800000, self.config)
        )
        self.assertEqual(parametros['shipping-address:city'], 'Cúcuta')
        self.assertEqual(parametros['shipping-address:region'], 'Norte de Santander')
        self.assertEqual(parametros['shipping-address:name'], 'Ana Gómez')
        self.assertNotIn('shipping-address:postal-code', parametros)

    def test_valor_abaixo_do_minimo_e_rejeitado(self):
        with self.assertRaises(DadosInvalidosError):
            construir_url_checkout(self.intencao, self.comprador, None, 99999, self.config)

    def test_valor_nao_inteiro_e_rejeitado(self):
        with self.assertRaises(DadosInvalidosError):
            construir_url_checkout(self.intencao, self.comprador, None, 118000.0, self.config)

    def test_chave_publica_ausente(self):
        self.config.chave_publica = ''
        with self.assertRaises(ConfiguracaoInvalidaError):
            construir_url_checkout(self.intencao, self.comprador, None, 11800000, self.config)

    def test_segredo_de_integridade_ausente(self):
        self.config.segredo_integridade = ''
        with self.assertRaises(ConfiguracaoInvalidaError):
            construir_url_checkout(self.intencao, self.comprador, None, 11800000, self.config)

    def test_url_de_retorno_local_e_rejeitada(self):
        """
        Cenário: O provedor não alcança loopback, redes privadas nem hosts .local.
        """
        for url in ('http://localhost:8000/retorno', 'http://127.0.0.1/retorno',
                    'http://192.168.0.10/retorno', 'http://minha-maquina.local/retorno'):
            with self.assertRaises(ConfiguracaoInvalidaError):
                validar_url_externa(url)

    def test_url_de_retorno_publica_e_aceita(self):
        validar_url_externa('https://loja.example.co/retorno')
        validar_url_externa('https://8.8.8.8/retorno')

    def test_referencia_longa_ou_com_caracteres_invalidos(self):
        with self.assertRaises(DadosInvalidosError):
            validar_referencia('PED-' + 'A' * 40)
        with self.assertRaises(DadosInvalidosError):
            validar_referencia('PED 123')

    def test_referencia_gerada_e_valida(self):
        referencia = gerar_referencia()
        validar_referencia(referencia)
        self.assertRegex(referencia, r'^PED-[0-9A-F]{8}-\d{13}$')
        self.assertNotEqual(referencia, gerar_referencia())

    def test_formato_da_expiracao(self):
        momento = datetime(2024, 5, 1, 7, 0, 0, 123456, tzinfo=timezone(timedelta(hours=-5)))
        self.assertEqual(formatar_expiracao(momento), '2024-05-01T12:00:00.123Z')


# ====================================================================
# SNAPSHOTS E ENTIDADES
# ====================================================================

class TestSnapshots(unittest.TestCase):

    def setUp(self):
        self.dados = {
            'carrinho_id': 10,
            'itens': [{'produto_id': 7, 'nome': 'Anel', 'quantidade': 2,
                       'preco_unitario': '50000.00', 'subtotal': '100000.00'}],
            'subtotal': '100000.00',
            'custo_envio': '18000.00',
            'total': '118000.00',
        }

    def test_snapshot_valido_calcula_centavos(self):
        snapshot = SnapshotCarrinho.from_dict(self.dados)
        self.assertEqual(snapshot.total, Decimal('118000.00'))
        self.assertEqual(snapshot.valor_centavos, 11800000)
        self.assertEqual(snapshot.itens[0].quantidade, 2)

    def test_snapshot_sem_itens_e_rejeitado(self):
        self.dados['itens'] = []
        with self.assertRaises(DadosInvalidosError):
            SnapshotCarrinho.from_dict(self.dados)

    def test_total_inconsistente_e_rejeitado(self):
        self.dados['total'] = '100000.00'
        with self.assertRaises(DadosInvalidosError):
            SnapshotCarrinho.from_dict(self.dados)

    def test_quantidade_invalida_e_rejeitada(self):
        for quantidade in (0, -1, '2.5', None):
            self.dados['itens'][0]['quantidade'] = quantidade
            with self.assertRaises(DadosInvalidosError):
                SnapshotCarrinho.from_dict(self.dados)

    def test_comprador_exige_email(self):
        with self.assertRaises(DadosInvalidosError):
            SnapshotComprador.from_dict({'usuario_id': 1, 'nome_completo': 'Ana'})

    def test_envio_ausente(self):
        self.assertIsNone(SnapshotEnvio.from_dict(None))
        self.assertFalse(SnapshotEnvio.from_dict({'cidade': 'Cúcuta'}).completo)

    def test_tempo_restante_da_intencao(self):
        intencao = criar_intencao(expira_em=datetime(2024, 5, 1, 12, 15, tzinfo=timezone.utc))
        agora = datetime(2024, 5, 1, 12, 10, tzinfo=timezone.utc)
        self.assertEqual(intencao.segundos_restantes(agora), 300)
        self.assertFalse(intencao.esta_expirada(agora))
        self.assertEqual(intencao.segundos_restantes(agora + timedelta(hours=1)), 0)
        self.assertTrue(intencao.esta_expirada(agora + timedelta(hours=1)))
