import uuid

from django.db import models


class IntencaoCheckout(models.Model):
    """
    Registro durável de uma tentativa de checkout, criado antes de qualquer
    pedido. Guarda os snapshots de carrinho, comprador e envio.
    """
    ESTADO_CHOICES = [
        ('PENDING', 'Pendente'),
        ('APPROVED', 'Aprovada'),
        ('DECLINED', 'Recusada'),
        ('VOIDED', 'Anulada'),
        ('ERROR', 'Erro'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    referencia_pagamento = models.CharField(max_length=40, unique=True)

    usuario = models.ForeignKey('infrastructure.Usuario', on_delete=models.PROTECT, related_name='intencoes_checkout')
    carrinho_id = models.BigIntegerField()
    endereco_envio_id = models.BigIntegerField(blank=True, null=True)
    metodo_pagamento = models.CharField(max_length=30)
    notas = models.TextField(blank=True)

    # Snapshots (validados ao desserializar, ver vitrine.core.entities)
    dados_carrinho = models.JSONField()
    dados_comprador = models.JSONField()
    dados_envio = models.JSONField(blank=True, null=True)

    estado_transacao = models.CharField(max_length=10, choices=ESTADO_CHOICES, default='PENDING')
    id_transacao_provedor = models.CharField(max_length=64, blank=True, null=True, db_index=True)

    criado_em = models.DateTimeField()
    atualizado_em = models.DateTimeField(auto_now=True)
    expira_em = models.DateTimeField()

    class Meta:
        verbose_name = 'Intenção de Checkout'
        verbose_name_plural = 'Intenções de Checkout'
        db_table = 'pagamentos_intencao_checkout'
        ordering = ['criado_em']
        indexes = [
            models.Index(fields=['estado_transacao', 'criado_em'], name='intencao_estado_criado_idx'),
        ]

    def __str__(self):
        return f"{self.referencia_pagamento} ({self.estado_transacao})"
