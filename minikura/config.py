"""
Configuration centralisée pour l'opérateur Minikura
Toutes les valeurs proviennent des variables d'environnement (.env supporté)
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Charger les variables d'environnement
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ["true", "1", "yes"]


class Settings:
    """Configuration centralisée de l'opérateur"""

    # API Configuration (surface de statut uniquement)
    API_TITLE = "Minikura Operator"
    API_DESCRIPTION = "Réconciliation des serveurs et proxys Minikura vers Kubernetes."
    API_VERSION = "0.4.0"
    API_PORT = int(os.getenv("API_PORT", 8080))
    DEBUG_MODE = _env_flag("DEBUG_MODE", "False")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR = Path(os.getenv("LOG_DIR", Path(__file__).resolve().parents[1] / "logs"))
    LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(5 * 1024 * 1024)))
    LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "10"))
    LOG_ENABLE_CONSOLE = _env_flag("LOG_ENABLE_CONSOLE", "True")

    # Kubernetes Configuration
    NAMESPACE = os.getenv("KUBERNETES_NAMESPACE", "minikura")
    KUBE_CONTEXT = os.getenv("KUBE_CONTEXT", None)
    K8S_IN_CLUSTER = _env_flag("K8S_IN_CLUSTER")
    SKIP_TLS_VERIFY = _env_flag("SKIP_TLS_VERIFY")

    # Groupe d'API des ressources personnalisées et préfixe des labels
    API_GROUP = os.getenv("MINIKURA_API_GROUP", "minikura.kirameki.cafe")
    CRD_VERSION = "v1alpha1"
    LABEL_PREFIX = os.getenv("MINIKURA_LABEL_PREFIX", API_GROUP)

    # Boucles de réconciliation (secondes)
    SYNC_INTERVAL_SECONDS = float(os.getenv("SYNC_INTERVAL_SECONDS", "30"))
    REFLECTION_INTERVAL_SECONDS = float(os.getenv("REFLECTION_INTERVAL_SECONDS", "30"))
    ENABLE_CRD_REFLECTION = _env_flag("ENABLE_CRD_REFLECTION")
    # Délai laissé au stockage K8s après l'enregistrement des CRD
    CRD_SETTLE_SECONDS = float(os.getenv("CRD_SETTLE_SECONDS", "2"))

    # Nommage et images
    COMPUTE_NAME_PREFIX = os.getenv("COMPUTE_NAME_PREFIX", "minecraft")
    SERVER_IMAGE = os.getenv("SERVER_IMAGE", "itzg/minecraft-server")
    PROXY_IMAGE = os.getenv("PROXY_IMAGE", "itzg/mc-proxy:latest")

    # Ressources par défaut
    DEFAULT_SERVER_MEMORY = "1G"
    DEFAULT_PROXY_MEMORY = "512M"
    JAVA_MEMORY_FACTOR = 0.8
    CPU_REQUEST = os.getenv("DEFAULT_CPU_REQUEST", "250m")
    CPU_LIMIT = os.getenv("DEFAULT_CPU_LIMIT", "500m")
    STORAGE_SIZE = os.getenv("DEFAULT_STORAGE_SIZE", "1Gi")

    # Base de données (lecture seule côté opérateur)
    DB_USER = os.getenv("DB_USER", "minikura")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "password")
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "3306")
    DB_NAME = os.getenv("DB_NAME", "minikura")
    DATABASE_URL = os.getenv("DATABASE_URL", "").strip() or (
        f"mysql+pymysql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    )

# Instance globale des paramètres
settings = Settings()
