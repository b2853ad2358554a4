# Define os modelos para o domínio de Carrinho.

from decimal import Decimal

from django.db import models
from django.db.models import Sum, F


class Carrinho(models.Model):
    """Modelo de Carrinho de Compras. Desativado quando o pedido é liquidado."""
    usuario = models.ForeignKey(
        'infrastructure.Usuario',
        on_delete=models.CASCADE,
        related_name='carrinhos'
    )
    ativo = models.BooleanField(default=True)
    data_criacao = models.DateTimeField(auto_now_add=True)
    data_atualizacao = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Carrinho"
        verbose_name_plural = "Carrinhos"
        db_table = 'carrinho_compras'
        ordering = ['-data_criacao']

    def __str__(self):
        return f"Carrinho #{self.pk} ({'ativo' if self.ativo else 'inativo'})"

    @property
    def total(self) -> Decimal:
        """Soma dos subtotais dos itens pelo preço registrado no carrinho."""
        total = self.itens.aggregate(
            total=Sum(F('quantidade') * F('preco_unitario'))
        )['total'] or Decimal('0')
        return Decimal(total)


class ItemCarrinho(models.Model):
    """Modelo para os itens dentro do carrinho."""
    carrinho = models.ForeignKey(Carrinho, on_delete=models.CASCADE, related_name='itens')
    produto = models.ForeignKey('catalog.Produto', on_delete=models.CASCADE)
    quantidade = models.PositiveIntegerField(default=1)
    preco_unitario = models.DecimalField(max_digits=12, decimal_places=2)
    data_adicao = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Item do Carrinho"
        verbose_name_plural = "Itens do Carrinho"
        unique_together = ('carrinho', 'produto')
        ordering = ['data_adicao']
        db_table = 'carrinho_item'

    def __str__(self):
        return f"{self.quantidade}x {self.produto_id}"
