from django.apps import AppConfig


class SkillswapConfig(AppConfig):
    name = "skillswap"
    verbose_name = "SkillSwap"
    default_auto_field = "django.db.models.BigAutoField"
