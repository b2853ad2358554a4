from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Produto',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('nome', models.CharField(max_length=200, verbose_name='Nome do Produto')),
                ('preco', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Preço de Venda')),
                ('preco_oferta', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name='Preço de Oferta')),
                ('estoque', models.IntegerField(default=0, verbose_name='Estoque Disponível')),
                ('ativo', models.BooleanField(default=True, verbose_name='Ativo no Catálogo')),
                ('criado_em', models.DateTimeField(auto_now_add=True)),
                ('atualizado_em', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Produto',
                'verbose_name_plural': 'Produtos',
                'db_table': 'catalogo_produto',
                'ordering': ['nome'],
                'constraints': [models.CheckConstraint(condition=models.Q(('estoque__gte', 0)), name='produto_estoque_nao_negativo')],
            },
        ),
    ]
