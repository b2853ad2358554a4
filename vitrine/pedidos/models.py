from decimal import Decimal

from django.db import models


class Pedido(models.Model):
    """
    Modelo que representa um pedido liquidado. Existe no máximo um pedido
    por referência de pagamento (restrição única no banco).
    """
    ESTADO_CHOICES = [
        ('pendente', 'Pendente'),
        ('confirmada', 'Confirmada'),
        ('em_preparacao', 'Em Preparação'),
        ('enviada', 'Enviada'),
        ('entregue', 'Entregue'),
        ('cancelada', 'Cancelada'),
    ]

    numero_pedido = models.CharField(max_length=20, unique=True)
    usuario = models.ForeignKey('infrastructure.Usuario', on_delete=models.PROTECT, related_name='pedidos')
    endereco_envio_id = models.BigIntegerField(blank=True, null=True)
    estado = models.CharField(max_length=20, choices=ESTADO_CHOICES, default='pendente')

    # Valores (fixados na criação a partir do snapshot)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    desconto = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    custo_envio = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    impostos = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    # Dados de Pagamento
    metodo_pagamento = models.CharField(max_length=30)
    referencia_pagamento = models.CharField(max_length=40, unique=True)

    notas = models.TextField(blank=True)
    motivo_cancelamento = models.CharField(max_length=255, blank=True, null=True)
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Pedido'
        verbose_name_plural = 'Pedidos'
        db_table = 'pedidos_pedido'
        ordering = ['-criado_em']

    def __str__(self):
        return f"Pedido {self.numero_pedido}"


class ItemPedido(models.Model):
    """
    Item dentro de um pedido. O preço é copiado do snapshot da intenção,
    nunca relido do catálogo.
    """
    pedido = models.ForeignKey(Pedido, related_name='itens', on_delete=models.CASCADE)
    produto = models.ForeignKey('catalog.Produto', on_delete=models.PROTECT, related_name='itens_pedido')

    nome_produto = models.CharField(max_length=255, blank=True)
    preco_unitario = models.DecimalField(max_digits=12, decimal_places=2)
    quantidade = models.PositiveIntegerField()
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        verbose_name = 'Item do Pedido'
        verbose_name_plural = 'Itens do Pedido'
        db_table = 'pedidos_item'
        ordering = ['produto_id']

    def __str__(self):
        return f"{self.quantidade}x {self.nome_produto or self.produto_id}"
