from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Search session settings."""

    # Backend (Supabase project)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    search_function: str = "advanced-search"  # edge function name
    search_action: str = "search_wallpapers"
    search_timeout: float = 12.0  # seconds, network call only
    search_page_size: int = 24

    # Result cache
    cache_ttl_seconds: float = 60.0
    cache_max_size: int = 10

    # Input
    debounce_seconds: float = 0.3

    # Grid
    eager_image_count: int = 12  # first N thumbnails skip lazy loading
    prefetch_neighbors: int = 1
    pagination_window: int = 5
    image_quality: int = 85
    suggested_terms: str = "nature,space,4K,minimal,dark,abstract"

    # Logging Config
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: str = "logs/wallsearch.log"  # Log file path
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 5  # Keep 5 backup files
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
    enable_file_logging: bool = False  # Enable logging to file
    enable_json_logging: bool = False  # Enable structured JSON logging

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def search_endpoint(self) -> str:
        """Full URL of the search edge function, empty when no backend is configured."""
        base = self.supabase_url.strip().rstrip("/")
        if not base:
            return ""
        return f"{base}/functions/v1/{self.search_function.strip('/')}"

    @property
    def categories_endpoint(self) -> str:
        base = self.supabase_url.strip().rstrip("/")
        if not base:
            return ""
        return f"{base}/rest/v1/categories"

    @property
    def suggested_terms_list(self) -> List[str]:
        """Parse suggested_terms into list for the empty state."""
        return [term.strip() for term in self.suggested_terms.split(",") if term.strip()]


settings = Settings()
