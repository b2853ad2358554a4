from rest_framework import serializers

from vitrine.core.use_cases import METODOS_PAGAMENTO


# ====================================================================
# SERIALIZERS DE ENTRADA
# ====================================================================

class CheckoutSerializer(serializers.Serializer):
    """
    Serializer para a validação dos dados de checkout.
    Os valores nunca vêm do cliente: são recalculados a partir do carrinho.
    """
    metodo_pagamento = serializers.ChoiceField(choices=[(m, m) for m in METODOS_PAGAMENTO])
    endereco_envio_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    notas = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')

    def to_internal_value(self, data):
        # aceita o método em minúsculas (ex.: "pse")
        if hasattr(data, 'get') and isinstance(data.get('metodo_pagamento'), str):
            data = data.copy()
            data['metodo_pagamento'] = data['metodo_pagamento'].upper()
        return super().to_internal_value(data)


class CancelarPedidoSerializer(serializers.Serializer):
    motivo = serializers.CharField(required=False, allow_blank=True, max_length=255, default='')


# ====================================================================
# SERIALIZERS DE SAÍDA (a partir das entidades do Core)
# ====================================================================

class CheckoutCriadoSerializer(serializers.Serializer):
    url_checkout = serializers.CharField()
    referencia = serializers.CharField()
    expira_em = serializers.DateTimeField()
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    valor_centavos = serializers.IntegerField()


class ItemPedidoSerializer(serializers.Serializer):
    produto_id = serializers.IntegerField()
    nome_produto = serializers.CharField()
    quantidade = serializers.IntegerField()
    preco_unitario = serializers.DecimalField(max_digits=12, decimal_places=2)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)


class PedidoSerializer(serializers.Serializer):
    """Representação do pedido liquidado exposta ao comprador."""
    id = serializers.IntegerField()
    numero_pedido = serializers.CharField()
    estado = serializers.CharField()
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    desconto = serializers.DecimalField(max_digits=12, decimal_places=2)
    custo_envio = serializers.DecimalField(max_digits=12, decimal_places=2)
    impostos = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    metodo_pagamento = serializers.CharField()
    referencia_pagamento = serializers.CharField()
    motivo_cancelamento = serializers.CharField(allow_null=True)
    criado_em = serializers.DateTimeField(allow_null=True)
    itens = ItemPedidoSerializer(many=True)


class TempoRestanteSerializer(serializers.Serializer):
    referencia = serializers.CharField()
    estado = serializers.CharField()
    expira_em = serializers.DateTimeField()
    segundos_restantes = serializers.IntegerField()
    expirada = serializers.BooleanField()
