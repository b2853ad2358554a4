from django.apps import AppConfig

class PagamentosConfig(AppConfig):
    name = 'vitrine.pagamentos'
    label = 'pagamentos'
    verbose_name = 'Intenções de Checkout e Pagamentos'
    default_auto_field = 'django.db.models.BigAutoField'
