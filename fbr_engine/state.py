from fbr_engine.services.sro.fbr_client import FbrSroClient


class AppState:
    sro_client: FbrSroClient | None = None


global_state = AppState()
