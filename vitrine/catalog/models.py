from decimal import Decimal

from django.db import models


# ====================================================================
# Produto
# ====================================================================

class Produto(models.Model):
    """
    Produto vendido na loja. O checkout só lê preço/estoque e ajusta o
    estoque por delta, sempre sob bloqueio de linha.
    """
    nome = models.CharField(max_length=200, verbose_name="Nome do Produto")
    preco = models.DecimalField(max_digits=12, decimal_places=2, verbose_name="Preço de Venda")
    preco_oferta = models.DecimalField(
        max_digits=12, decimal_places=2, blank=True, null=True, verbose_name="Preço de Oferta"
    )
    estoque = models.IntegerField(default=0, verbose_name="Estoque Disponível")
    ativo = models.BooleanField(default=True, verbose_name="Ativo no Catálogo")
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Produto"
        verbose_name_plural = "Produtos"
        db_table = 'catalogo_produto'
        ordering = ['nome']
        constraints = [
            models.CheckConstraint(condition=models.Q(estoque__gte=0), name='produto_estoque_nao_negativo'),
        ]

    def __str__(self):
        return self.nome

    @property
    def preco_vigente(self) -> Decimal:
        """Preço de oferta quando menor que o preço cheio."""
        if self.preco_oferta is not None and self.preco_oferta < self.preco:
            return self.preco_oferta
        return self.preco
