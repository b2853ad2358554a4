import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='IntencaoCheckout',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('referencia_pagamento', models.CharField(max_length=40, unique=True)),
                ('carrinho_id', models.BigIntegerField()),
                ('endereco_envio_id', models.BigIntegerField(blank=True, null=True)),
                ('metodo_pagamento', models.CharField(max_length=30)),
                ('notas', models.TextField(blank=True)),
                ('dados_carrinho', models.JSONField()),
                ('dados_comprador', models.JSONField()),
                ('dados_envio', models.JSONField(blank=True, null=True)),
                ('estado_transacao', models.CharField(choices=[('PENDING', 'Pendente'), ('APPROVED', 'Aprovada'), ('DECLINED', 'Recusada'), ('VOIDED', 'Anulada'), ('ERROR', 'Erro')], default='PENDING', max_length=10)),
                ('id_transacao_provedor', models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ('criado_em', models.DateTimeField()),
                ('atualizado_em', models.DateTimeField(auto_now=True)),
                ('expira_em', models.DateTimeField()),
                ('usuario', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='intencoes_checkout', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Intenção de Checkout',
                'verbose_name_plural': 'Intenções de Checkout',
                'db_table': 'pagamentos_intencao_checkout',
                'ordering': ['criado_em'],
                'indexes': [models.Index(fields=['estado_transacao', 'criado_em'], name='intencao_estado_criado_idx')],
            },
        ),
    ]
