from pathlib import Path

from pydantic_settings import BaseSettings

from engine.expansion.model_builder import ModelOptions, StorageBoundary


class Settings(BaseSettings):
    model_config = {"env_prefix": "", "case_sensitive": False}

    # App
    environment: str = "development"
    debug: bool = True
    app_name: str = "GridPlan"
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    log_json: bool = False

    # Data
    data_dir: Path = Path(__file__).resolve().parents[2] / "data"
    default_region: str = "es"

    # Solver
    solver_time_limit: float | None = 300.0

    # Model
    value_of_lost_load: float = 20_000_000.0
    storage_efficiency: float = 0.9
    storage_cycling_cost: float = 0.1
    storage_boundary: StorageBoundary = StorageBoundary.RESET

    def model_options(self) -> ModelOptions:
        return ModelOptions(
            value_of_lost_load=self.value_of_lost_load,
            storage_efficiency=self.storage_efficiency,
            storage_cycling_cost=self.storage_cycling_cost,
            storage_boundary=self.storage_boundary,
        )


settings = Settings()
