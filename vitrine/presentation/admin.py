# Configuração da interface administrativa do Django para os modelos da Vitrine.

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from vitrine.catalog.models import Produto
from vitrine.infrastructure.models import Endereco, Usuario
from vitrine.pagamentos.models import IntencaoCheckout
from vitrine.pedidos.models import ItemPedido, Pedido


# ====================================================================
# 1. USUÁRIOS E ENDEREÇOS
# ====================================================================

class EnderecoInline(admin.TabularInline):
    model = Endereco
    extra = 0
    fields = ('apelido', 'endereco', 'cidade', 'departamento', 'telefone', 'is_principal', 'ativo')


@admin.register(Usuario)
class UsuarioAdmin(BaseUserAdmin):
    """Usuário autenticado por e-mail, com os dados exigidos pelo checkout."""
    list_display = ('email', 'first_name', 'last_name', 'is_staff', 'is_active', 'telefone')
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Informações Pessoais', {'fields': ('first_name', 'last_name')}),
        ('Dados do Comprador', {
            'fields': ('prefixo_telefone', 'telefone', 'tipo_documento', 'numero_documento'),
        }),
        ('Permissões', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
    )
    add_fieldsets = (
        (None, {'classes': ('wide',), 'fields': ('email', 'password1', 'password2')}),
    )
    inlines = [EnderecoInline]
    search_fields = ('email', 'first_name', 'last_name')
    ordering = ('email',)


# ====================================================================
# 2. CATÁLOGO
# ====================================================================

@admin.register(Produto)
class ProdutoAdmin(admin.ModelAdmin):
    list_display = ('nome', 'preco', 'preco_oferta', 'estoque', 'ativo', 'criado_em')
    list_filter = ('ativo',)
    search_fields = ('nome', 'id')
    ordering = ('nome',)


# ====================================================================
# 3. PEDIDOS
# ====================================================================

class ItemPedidoInline(admin.TabularInline):
    """Exibe os itens comprados dentro do detalhe do Pedido."""
    model = ItemPedido
    readonly_fields = ('produto', 'nome_produto', 'preco_unitario', 'quantidade', 'subtotal')
    extra = 0
    can_delete = False


@admin.register(Pedido)
class PedidoAdmin(admin.ModelAdmin):
    list_display = ('numero_pedido', 'usuario', 'criado_em', 'total', 'estado', 'metodo_pagamento')
    list_filter = ('estado', 'metodo_pagamento', 'criado_em')
    search_fields = ('numero_pedido', 'referencia_pagamento', 'usuario__email')
    date_hierarchy = 'criado_em'
    inlines = [ItemPedidoInline]
    # valores e referência vêm da liquidação; o estoque só é devolvido pela API de cancelamento
    readonly_fields = (
        'numero_pedido', 'usuario', 'endereco_envio_id', 'subtotal', 'desconto', 'custo_envio',
        'impostos', 'total', 'metodo_pagamento', 'referencia_pagamento', 'motivo_cancelamento',
        'criado_em', 'atualizado_em',
    )

    def has_add_permission(self, request):
        """Impedir a criação de pedidos pela interface do Admin."""
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ====================================================================
# 4. INTENÇÕES DE CHECKOUT
# ====================================================================

@admin.register(IntencaoCheckout)
class IntencaoCheckoutAdmin(admin.ModelAdmin):
    list_display = ('referencia_pagamento', 'usuario', 'metodo_pagamento', 'estado_transacao', 'criado_em', 'expira_em')
    list_filter = ('estado_transacao', 'metodo_pagamento')
    search_fields = ('referencia_pagamento', 'id_transacao_provedor', 'usuario__email')
    readonly_fields = [f.name for f in IntencaoCheckout._meta.fields]

    def has_add_permission(self, request):
        return False
