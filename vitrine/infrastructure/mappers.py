"""
Mapeadores (Mappers) para converter entre:
1. Modelos do Django ORM
2. Entidades de Domínio (vitrine.core.entities)
"""
from typing import Any, List, Optional

from django.apps import apps

from vitrine.core.entities import (
    Carrinho as CarrinhoEntity,
    ItemCarrinho as ItemCarrinhoEntity,
    IntencaoCheckout as IntencaoCheckoutEntity,
    ItemPedido as ItemPedidoEntity,
    Pedido as PedidoEntity,
    SnapshotCarrinho,
    SnapshotComprador,
    SnapshotEnvio,
)

# ====================================================================
# Uso de apps.get_model para evitar dependências circulares
# ====================================================================

def get_model(app_label: str, model_name: str):
    """Retorna um modelo do Django de forma segura (lazy loading)."""
    return apps.get_model(app_label, model_name)


# ====================================================================
# MAPPER DA INTENÇÃO DE CHECKOUT
# ====================================================================

class IntencaoCheckoutMapper:
    """Converte IntencaoCheckout, validando os snapshots JSON na leitura."""

    @staticmethod
    def to_entity(model: Any) -> Optional[IntencaoCheckoutEntity]:
        if not model:
            return None
        return IntencaoCheckoutEntity(
            id=str(model.id),
            referencia=model.referencia_pagamento,
            usuario_id=model.usuario_id,
            carrinho_id=model.carrinho_id,
            endereco_envio_id=model.endereco_envio_id,
            metodo_pagamento=model.metodo_pagamento,
            notas=model.notas or '',
            dados_carrinho=SnapshotCarrinho.from_dict(model.dados_carrinho),
            dados_comprador=SnapshotComprador.from_dict(model.dados_comprador),
            dados_envio=SnapshotEnvio.from_dict(model.dados_envio),
            estado=model.estado_transacao,
            id_transacao_provedor=model.id_transacao_provedor,
            criado_em=model.criado_em,
            atualizado_em=model.atualizado_em,
            expira_em=model.expira_em,
        )

    @staticmethod
    def to_model(entity: IntencaoCheckoutEntity, model: Optional[Any] = None) -> Any:
        IntencaoModel = get_model('pagamentos', 'IntencaoCheckout')
        if model is None:
            model = IntencaoModel(id=entity.id)
        model.referencia_pagamento = entity.referencia
        model.usuario_id = entity.usuario_id
        model.carrinho_id = entity.carrinho_id
        model.endereco_envio_id = entity.endereco_envio_id
        model.metodo_pagamento = entity.metodo_pagamento
        model.notas = entity.notas or ''
        model.dados_carrinho = entity.dados_carrinho.to_dict()
        model.dados_comprador = entity.dados_comprador.to_dict()
        model.dados_envio = entity.dados_envio.to_dict() if entity.dados_envio else None
        model.estado_transacao = entity.estado
        model.id_transacao_provedor = entity.id_transacao_provedor
        model.criado_em = entity.criado_em
        model.expira_em = entity.expira_em
        return model


# ====================================================================
# MAPPERS DE PEDIDOS
# ====================================================================

class ItemPedidoMapper:

    @staticmethod
    def to_entity(model: Any) -> ItemPedidoEntity:
        return ItemPedidoEntity(
            id=model.id,
            produto_id=model.produto_id,
            nome_produto=model.nome_produto,
            quantidade=model.quantidade,
            preco_unitario=model.preco_unitario,
            subtotal=model.subtotal,
        )


class PedidoMapper:
    """Mapeador para Pedido (inclui os itens)."""

    @staticmethod
    def to_entity(model: Any) -> Optional[PedidoEntity]:
        if not model:
            return None
        itens: List[ItemPedidoEntity] = [
            ItemPedidoMapper.to_entity(item) for item in model.itens.all().order_by('produto_id')
        ]
        return PedidoEntity(
            id=model.id,
            numero_pedido=model.numero_pedido,
            usuario_id=model.usuario_id,
            endereco_envio_id=model.endereco_envio_id,
            estado=model.estado,
            subtotal=model.subtotal,
            desconto=model.desconto,
            custo_envio=model.custo_envio,
            impostos=model.impostos,
            total=model.total,
            metodo_pagamento=model.metodo_pagamento,
            referencia_pagamento=model.referencia_pagamento,
            notas=model.notas,
            motivo_cancelamento=model.motivo_cancelamento,
            itens=itens,
            criado_em=model.criado_em,
            atualizado_em=model.atualizado_em,
        )


# ====================================================================
# MAPPER DO CARRINHO
# ====================================================================

class CarrinhoMapper:

    @staticmethod
    def to_entity(model: Any) -> Optional[CarrinhoEntity]:
        if not model:
            return None
        return CarrinhoEntity(
            id=model.id,
            usuario_id=model.usuario_id,
            ativo=model.ativo,
            itens=[
                ItemCarrinhoEntity(
                    produto_id=item.produto_id,
                    nome=item.produto.nome,
                    quantidade=item.quantidade,
                    preco_unitario=item.preco_unitario,
                )
                for item in model.itens.all()
            ],
        )
