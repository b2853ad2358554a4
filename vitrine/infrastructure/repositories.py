"""
Camada de Infraestrutura: Implementação de Repositórios e Serviços.

Esta camada traduz as operações abstratas definidas nas Interfaces da Core
em chamadas concretas ao framework (Django ORM, transações, bloqueios).
"""
import logging
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from django.apps import apps
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, connection, transaction
from django.db.models import F
from django.utils import timezone

from vitrine.core.entities import (
    Carrinho, EstadoPedido, EstadoTransacao, IntencaoCheckout, Pedido, SnapshotComprador,
    SnapshotEnvio, ValidacaoCarrinho
)
from vitrine.core.exceptions import (
    ConflitoEstoqueError, EstoqueInsuficienteError, IntencaoNaoEncontradaError,
    ItemNaoEncontradoError, LiquidacaoDuplicadaError, PedidoNaoEncontradoError,
    PrecoAlteradoError, TransicaoPedidoInvalidaError
)
from vitrine.core.ports import (
    ICarrinhoService, IIntencaoCheckoutRepository, ILedgerPedidos, IPerfilCompradorService,
    IUnidadeDeTrabalho
)

from .mappers import CarrinhoMapper, IntencaoCheckoutMapper, PedidoMapper

logger = logging.getLogger(__name__)

TOLERANCIA_PRECO = Decimal('0.01')
TENTATIVAS_NUMERO_PEDIDO = 5


# Helper para Lazy Loading
def get_model(app_label, model_name):
    """Busca o modelo Django de forma segura (Lazy Loading)."""
    return apps.get_model(app_label, model_name)


# ====================================================================
# 1. UNIDADE DE TRABALHO
# ====================================================================

class UnidadeDeTrabalhoDjango(IUnidadeDeTrabalho):
    """Fronteira transacional baseada em transaction.atomic / on_commit."""

    def atomico(self):
        return transaction.atomic()

    def apos_commit(self, callback):
        transaction.on_commit(callback)


# ====================================================================
# 2. INTENÇÕES DE CHECKOUT
# ====================================================================

class IntencaoCheckoutRepositoryDjango(IIntencaoCheckoutRepository):
    """Armazenamento das intenções de checkout usando o Django ORM."""

    @property
    def IntencaoModel(self):
        return get_model('pagamentos', 'IntencaoCheckout')

    @property
    def PedidoModel(self):
        return get_model('pedidos', 'Pedido')

    def criar(self, intencao: IntencaoCheckout) -> IntencaoCheckout:
        intencao.estado = EstadoTransacao.PENDING
        model = IntencaoCheckoutMapper.to_model(intencao)
        model.save(force_insert=True)
        return IntencaoCheckoutMapper.to_entity(model)

    def buscar_por_id(self, intencao_id: str) -> Optional[IntencaoCheckout]:
        try:
            model = self.IntencaoModel.objects.get(pk=intencao_id)
        except (self.IntencaoModel.DoesNotExist, DjangoValidationError, ValueError):
            return None
        return IntencaoCheckoutMapper.to_entity(model)

    def buscar_por_referencia(self, referencia: str) -> Optional[IntencaoCheckout]:
        model = self.IntencaoModel.objects.filter(referencia_pagamento=referencia).first()
        return IntencaoCheckoutMapper.to_entity(model)

    def buscar_por_transacao(self, id_transacao_provedor: str) -> Optional[IntencaoCheckout]:
        model = self.IntencaoModel.objects.filter(id_transacao_provedor=id_transacao_provedor).first()
        return IntencaoCheckoutMapper.to_entity(model)

    def bloquear_aprovada(self, intencao_id: str) -> Optional[IntencaoCheckout]:
        """SELECT ... FOR UPDATE filtrado por estado APPROVED. Exige transação aberta."""
        try:
            model = (
                self.IntencaoModel.objects.select_for_update()
                .filter(pk=intencao_id, estado_transacao=EstadoTransacao.APPROVED)
                .first()
            )
        except (DjangoValidationError, ValueError):
            return None
        return IntencaoCheckoutMapper.to_entity(model)

    @transaction.atomic
    def atualizar_estado(
        self,
        intencao_id: str,
        novo_estado: str,
        id_transacao_provedor: Optional[str] = None
    ) -> Tuple[IntencaoCheckout, bool]:
        """
        Só PENDING transiciona; o primeiro estado terminal vence e repetições
        são no-ops. O id da transação é gravado na primeira vez que é conhecido.
        """
        try:
            model = self.IntencaoModel.objects.select_for_update().get(pk=intencao_id)
        except (self.IntencaoModel.DoesNotExist, DjangoValidationError, ValueError):
            raise IntencaoNaoEncontradaError(f"Intenção {intencao_id} não encontrada.")

        campos = []
        if id_transacao_provedor and model.id_transacao_provedor != id_transacao_provedor:
            if model.id_transacao_provedor:
                logger.warning(
                    "Referência %s já associada à transação %s; ignorando %s.",
                    model.referencia_pagamento, model.id_transacao_provedor, id_transacao_provedor,
                )
            else:
                model.id_transacao_provedor = id_transacao_provedor
                campos.append('id_transacao_provedor')

        mudou = False
        if novo_estado != model.estado_transacao:
            if model.estado_transacao == EstadoTransacao.PENDING and novo_estado in EstadoTransacao.TERMINAIS:
                model.estado_transacao = novo_estado
                campos.append('estado_transacao')
                mudou = True
            else:
                logger.info(
                    "Transição %s -> %s ignorada para a referência %s.",
                    model.estado_transacao, novo_estado, model.referencia_pagamento,
                )

        if campos:
            model.save(update_fields=campos + ['atualizado_em'])
        return IntencaoCheckoutMapper.to_entity(model), mudou

    @transaction.atomic
    def registrar_falha_liquidacao(self, intencao_id: str) -> bool:
        """APPROVED -> ERROR, apenas quando nenhum pedido foi criado para a referência."""
        model = self.IntencaoModel.objects.select_for_update().filter(pk=intencao_id).first()
        if model is None or model.estado_transacao != EstadoTransacao.APPROVED:
            return False
        if self.PedidoModel.objects.filter(referencia_pagamento=model.referencia_pagamento).exists():
            return False
        model.estado_transacao = EstadoTransacao.ERROR
        model.save(update_fields=['estado_transacao', 'atualizado_em'])
        logger.warning("Intenção %s marcada como ERROR após falha na liquidação.", model.referencia_pagamento)
        return True

    def listar_ids_pendentes(self, desde: datetime, limite: int) -> List[str]:
        qs = (
            self.IntencaoModel.objects
            .filter(estado_transacao=EstadoTransacao.PENDING, criado_em__gte=desde)
            .order_by('criado_em')
            .values_list('pk', flat=True)[:limite]
        )
        return [str(pk) for pk in qs]


# ====================================================================
# 3. LEDGER DE PEDIDOS
# ====================================================================

class LedgerPedidosDjango(ILedgerPedidos):
    """Implementação do livro-razão de pedidos usando o Django ORM."""

    # Propriedades para carregar modelos de forma LAZY
    @property
    def PedidoModel(self):
        return get_model('pedidos', 'Pedido')

    @property
    def ItemPedidoModel(self):
        return get_model('pedidos', 'ItemPedido')

    @property
    def ProdutoModel(self):
        return get_model('catalog', 'Produto')

    @property
    def CarrinhoModel(self):
        return get_model('carrinho', 'Carrinho')

    @property
    def ItemCarrinhoModel(self):
        return get_model('carrinho', 'ItemCarrinho')

    # --- Consultas ---

    def buscar_por_id(self, pedido_id: int) -> Optional[Pedido]:
        model = self.PedidoModel.objects.filter(pk=pedido_id).first()
        return PedidoMapper.to_entity(model)

    def buscar_por_referencia(self, referencia: str) -> Optional[Pedido]:
        model = self.PedidoModel.objects.filter(referencia_pagamento=referencia).first()
        return PedidoMapper.to_entity(model)

    def bloquear_por_referencia(self, referencia: str) -> Optional[Pedido]:
        model = self.PedidoModel.objects.select_for_update().filter(referencia_pagamento=referencia).first()
        return PedidoMapper.to_entity(model)

    # --- Numeração ---

    def gerar_numero_pedido(self, dia: Optional[date] = None) -> str:
        """
        ORD-AAAAMMDD-NNNN. Os pedidos do dia são bloqueados antes de calcular
        a próxima sequência.
        """
        dia = dia or timezone.localdate()
        prefixo = f"ORD-{dia:%Y%m%d}-"
        numeros = list(
            self.PedidoModel.objects.select_for_update()
            .filter(numero_pedido__startswith=prefixo)
            .values_list('numero_pedido', flat=True)
        )
        sequencias = [int(n.rsplit('-', 1)[1]) for n in numeros if n.rsplit('-', 1)[1].isdigit()]
        proxima = (max(sequencias) + 1) if sequencias else 1
        return f"{prefixo}{proxima:04d}"

    # --- Criação ---

    def criar_a_partir_do_carrinho(self, intencao: IntencaoCheckout) -> Pedido:
        """
        Cria o pedido a partir do snapshot da intenção: bloqueia os produtos em
        ordem de id, confere estoque e preço, insere pedido e itens, baixa o
        estoque e desativa o carrinho. Único caminho que decrementa estoque.
        """
        if not connection.in_atomic_block:
            raise transaction.TransactionManagementError(
                "criar_a_partir_do_carrinho deve ser chamado dentro de uma transação."
            )

        snapshot = intencao.dados_carrinho
        snapshot.validar_totais()

        quantidades = OrderedDict()
        for item in sorted(snapshot.itens, key=lambda i: i.produto_id):
            quantidades[item.produto_id] = quantidades.get(item.produto_id, 0) + item.quantidade

        produtos = {
            produto.id: produto
            for produto in self.ProdutoModel.objects.select_for_update()
            .filter(pk__in=list(quantidades.keys()))
            .order_by('pk')
        }

        for item in snapshot.itens:
            produto = produtos.get(item.produto_id)
            if produto is None or not produto.ativo:
                raise ConflitoEstoqueError(f"Produto {item.produto_id} indisponível.")
            if abs(produto.preco_vigente - item.preco_unitario) > TOLERANCIA_PRECO:
                raise PrecoAlteradoError(item.produto_id, item.preco_unitario, produto.preco_vigente)

        for produto_id, quantidade in quantidades.items():
            produto = produtos[produto_id]
            if produto.estoque < quantidade:
                raise EstoqueInsuficienteError(produto_id, produto.estoque, quantidade)

        pedido_model = self._inserir_pedido(intencao)

        self.ItemPedidoModel.objects.bulk_create([
            self.ItemPedidoModel(
                pedido=pedido_model,
                produto_id=item.produto_id,
                nome_produto=item.nome or produtos[item.produto_id].nome,
                quantidade=item.quantidade,
                preco_unitario=item.preco_unitario,
                subtotal=item.subtotal,
            )
            for item in sorted(snapshot.itens, key=lambda i: i.produto_id)
        ])

        # Baixa o estoque usando F expression (atomic update)
        for produto_id, quantidade in quantidades.items():
            self.ProdutoModel.objects.filter(pk=produto_id).update(estoque=F('estoque') - quantidade)

        self.ItemCarrinhoModel.objects.filter(carrinho_id=intencao.carrinho_id).delete()
        self.CarrinhoModel.objects.filter(pk=intencao.carrinho_id).update(
            ativo=False, data_atualizacao=timezone.now()
        )

        return PedidoMapper.to_entity(pedido_model)

    def _inserir_pedido(self, intencao: IntencaoCheckout):
        snapshot = intencao.dados_carrinho
        for tentativa in range(TENTATIVAS_NUMERO_PEDIDO):
            numero = self.gerar_numero_pedido()
            try:
                with transaction.atomic():
                    return self.PedidoModel.objects.create(
                        numero_pedido=numero,
                        usuario_id=intencao.usuario_id,
                        endereco_envio_id=intencao.endereco_envio_id,
                        estado=EstadoPedido.PENDENTE,
                        subtotal=snapshot.subtotal,
                        desconto=snapshot.desconto,
                        custo_envio=snapshot.custo_envio,
                        impostos=snapshot.impostos,
                        total=snapshot.total,
                        metodo_pagamento=intencao.metodo_pagamento,
                        referencia_pagamento=intencao.referencia,
                        notas=intencao.notas or '',
                    )
            except IntegrityError:
                if self.PedidoModel.objects.filter(referencia_pagamento=intencao.referencia).exists():
                    raise LiquidacaoDuplicadaError(intencao.referencia)
                if tentativa == TENTATIVAS_NUMERO_PEDIDO - 1:
                    raise
                logger.warning("Número de pedido %s já utilizado; gerando outro.", numero)

    # --- Transições ---

    @transaction.atomic
    def atualizar_estado(self, pedido_id: int, novo_estado: str) -> Pedido:
        model = self.PedidoModel.objects.select_for_update().filter(pk=pedido_id).first()
        if model is None:
            raise PedidoNaoEncontradoError(f"Pedido ID {pedido_id} não encontrado.")
        model.estado = novo_estado
        model.save(update_fields=['estado', 'atualizado_em'])
        return PedidoMapper.to_entity(model)

    @transaction.atomic
    def cancelar(self, pedido_id: int, motivo: Optional[str] = None) -> Tuple[Pedido, bool]:
        """
        Devolve o estoque de cada linha e marca o pedido como 'cancelada', na
        mesma transação. Cancelar de novo devolve o estado atual sem repor estoque.
        """
        model = self.PedidoModel.objects.select_for_update().filter(pk=pedido_id).first()
        if model is None:
            raise PedidoNaoEncontradoError(f"Pedido ID {pedido_id} não encontrado.")

        if model.estado == EstadoPedido.CANCELADA:
            return PedidoMapper.to_entity(model), False
        if model.estado != EstadoPedido.PENDENTE:
            raise TransicaoPedidoInvalidaError(
                f"Pedido {model.numero_pedido} em estado '{model.estado}' não pode ser cancelado."
            )

        quantidades = OrderedDict()
        for item in model.itens.order_by('produto_id'):
            quantidades[item.produto_id] = quantidades.get(item.produto_id, 0) + item.quantidade

        list(self.ProdutoModel.objects.select_for_update().filter(pk__in=list(quantidades)).order_by('pk'))
        for produto_id, quantidade in quantidades.items():
            self.ProdutoModel.objects.filter(pk=produto_id).update(estoque=F('estoque') + quantidade)

        model.estado = EstadoPedido.CANCELADA
        model.motivo_cancelamento = (motivo or '')[:255] or None
        model.save(update_fields=['estado', 'motivo_cancelamento', 'atualizado_em'])
        logger.info("Pedido %s cancelado; estoque restaurado.", model.numero_pedido)
        return PedidoMapper.to_entity(model), True


# ====================================================================
# 4. SERVIÇOS DE CARRINHO E PERFIL
# ====================================================================

class CarrinhoServiceDjango(ICarrinhoService):
    """Leitura do carrinho ativo e revalidação de estoque/preço antes do checkout."""

    @property
    def CarrinhoModel(self):
        return get_model('carrinho', 'Carrinho')

    @property
    def ProdutoModel(self):
        return get_model('catalog', 'Produto')

    def buscar_carrinho_ativo(self, usuario_id: int) -> Optional[Carrinho]:
        model = (
            self.CarrinhoModel.objects
            .filter(usuario_id=usuario_id, ativo=True)
            .prefetch_related('itens__produto')
            .order_by('-data_criacao')
            .first()
        )
        return CarrinhoMapper.to_entity(model)

    def validar_para_checkout(self, carrinho: Carrinho) -> ValidacaoCarrinho:
        erros = []
        produtos = self.ProdutoModel.objects.in_bulk([item.produto_id for item in carrinho.itens])
        for item in carrinho.itens:
            produto = produtos.get(item.produto_id)
            if produto is None or not produto.ativo:
                erros.append(f"Produto {item.nome or item.produto_id} não está mais disponível.")
                continue
            if produto.estoque < item.quantidade:
                erros.append(f"Estoque insuficiente para {produto.nome} (disponível: {produto.estoque}).")
            if abs(produto.preco_vigente - item.preco_unitario) > TOLERANCIA_PRECO:
                erros.append(f"O preço de {produto.nome} foi atualizado.")
        return ValidacaoCarrinho(valido=not erros, erros=erros)


class PerfilCompradorServiceDjango(IPerfilCompradorService):
    """Resolve os snapshots de comprador e de envio a partir do usuário."""

    @property
    def EnderecoModel(self):
        return get_model('infrastructure', 'Endereco')

    def dados_comprador(self, usuario_id: int) -> SnapshotComprador:
        User = get_user_model()
        try:
            usuario = User.objects.get(pk=usuario_id)
        except User.DoesNotExist:
            raise ItemNaoEncontradoError(f"Usuário ID {usuario_id} não encontrado.")
        return SnapshotComprador(
            usuario_id=usuario.id,
            email=usuario.email,
            nome_completo=usuario.get_full_name() or usuario.email,
            telefone=usuario.telefone or None,
            prefixo_telefone=usuario.prefixo_telefone or None,
            tipo_documento=usuario.tipo_documento or None,
            numero_documento=usuario.numero_documento or None,
        )

    def endereco_envio(self, usuario_id: int, endereco_id: int) -> Optional[SnapshotEnvio]:
        endereco = self.EnderecoModel.objects.filter(pk=endereco_id, usuario_id=usuario_id, ativo=True).first()
        if endereco is None:
            return None
        return SnapshotEnvio(
            endereco_id=endereco.id,
            endereco=endereco.endereco,
            cidade=endereco.cidade,
            departamento=endereco.departamento,
            pais=endereco.pais,
            telefone=endereco.telefone or None,
            nome_destinatario=endereco.nome_destinatario or None,
            codigo_postal=endereco.codigo_postal or None,
            complemento=endereco.complemento or None,
        )
