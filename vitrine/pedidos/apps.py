from django.apps import AppConfig

class PedidosConfig(AppConfig):
    name = 'vitrine.pedidos'
    label = 'pedidos'
    verbose_name = 'Gerenciamento de Pedidos'
    default_auto_field = 'django.db.models.BigAutoField'
