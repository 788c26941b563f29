from typing import Optional

from elasticapm import Client

from meta_quote_engine.config import Settings, settings


class ApmClient:
    def __init__(self, config: Settings):
        self.config = config
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        return self._make_apm_client(self.config)

    def _make_apm_client(self, config: Settings) -> Client:
        if self._client:
            return self._client
        apm_config = {
            'SERVICE_NAME': config.SERVICE_NAME,
            'SERVER_URL': config.APM_SERVER_URL,
            'ENABLED': config.APM_ENABLED,
            'RECORDING': config.APM_RECORDING,
            'LOG_LEVEL': config.LOG_LEVEL,
            'ENVIRONMENT': config.ENVIRONMENT,
            'SERVICE_VERSION': config.VERSION,
        }
        self._client = Client(apm_config)
        return self._client


apm_client = ApmClient(settings)
