# vitrine/core/apps.py

from django.apps import AppConfig

class CoreConfig(AppConfig):
    name = 'vitrine.core'
    label = 'core'
    # Entidades, portas e casos de uso. Não possui modelos de banco de dados.
    verbose_name = 'Camada de Entidades e Lógica (Core)'
    default_auto_field = 'django.db.models.BigAutoField'
