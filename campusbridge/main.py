"""
Main application entry point for Campus Bridge.

Wires configuration, the relational store, intake storage, the Dropbox
account pool and the HTTP server together.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .api import BridgeServer
from .config import BridgeConfig, ConfigValidator, EnvironmentLoader, StorageBackend
from .data import RepositoryFactory
from .exceptions import ConfigurationError
from .hosting import (
    AccountSelector,
    DropboxClient,
    TokenLifecycle,
    TokenRefresher,
    TokenValidator,
    UsageAccountant,
)
from .processing import MaterialProcessor
from .storage import BlobStorage, LocalBlobStorage, SupabaseBlobStorage


class CampusBridgeApp:
    """Main application class for Campus Bridge."""

    def __init__(self):
        self.config: Optional[BridgeConfig] = None
        self.repositories: Optional[RepositoryFactory] = None
        self.storage: Optional[BlobStorage] = None
        self.dropbox: Optional[DropboxClient] = None
        self.processor: Optional[MaterialProcessor] = None
        self.server: Optional[BridgeServer] = None

        # File handler is optional (data/ may not be writable)
        log_handlers = [logging.StreamHandler(sys.stdout)]
        try:
            log_path = Path("data/campusbridge.log")
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_handlers.append(logging.FileHandler(str(log_path)))
        except OSError:
            pass

        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=log_handlers
        )
        self.logger = logging.getLogger(__name__)

    async def initialize(self, config: Optional[BridgeConfig] = None):
        """Initialize all application components.

        Args:
            config: Preloaded configuration; read from the environment if omitted
        """
        self.logger.info("Initializing Campus Bridge...")

        self.config = config or EnvironmentLoader.load_config()
        logging.getLogger().setLevel(self.config.log_level.value)

        for problem in ConfigValidator.validate_config(self.config):
            self.logger.warning(f"Configuration: {problem}")

        await self._initialize_database()
        self._initialize_storage()
        await self._initialize_processor()

        materials = await self.repositories.get_material_repository()
        self.server = BridgeServer(self.config, self.processor, materials)

        self.logger.info("All components initialized successfully")

    async def _initialize_database(self):
        db_path = self.config.database.path
        self.logger.info(f"Initializing database at {db_path}...")
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.repositories = RepositoryFactory(
            backend="sqlite",
            db_path=db_path,
            pool_size=self.config.database.pool_size,
            token_encryption_key=self.config.database.token_encryption_key,
        )
        await self.repositories.get_connection()

        if not self.config.database.token_encryption_key:
            self.logger.warning("TOKEN_ENCRYPTION_KEY not set; Dropbox tokens are stored in plaintext")

    def _initialize_storage(self):
        storage = self.config.storage
        if storage.backend == StorageBackend.SUPABASE:
            if not storage.supabase_url or not storage.service_role_key:
                raise ConfigurationError(
                    "Supabase storage requires SUPABASE_URL and SUPABASE_SERVICE_ROLE"
                )
            self.logger.info(f"Using Supabase storage bucket '{storage.bucket}'")
            self.storage = SupabaseBlobStorage(
                storage.supabase_url,
                storage.service_role_key,
                bucket=storage.bucket,
                timeout=self.config.dropbox.http_timeout,
            )
        else:
            self.logger.info(f"Using local storage at {storage.root}/{storage.bucket}")
            self.storage = LocalBlobStorage(Path(storage.root), bucket=storage.bucket)

    async def _initialize_processor(self):
        dropbox_config = self.config.dropbox
        accounts = await self.repositories.get_account_repository()

        self.dropbox = DropboxClient(timeout=dropbox_config.http_timeout)
        lifecycle = TokenLifecycle(
            accounts,
            TokenValidator(self.dropbox),
            TokenRefresher(self.dropbox),
            default_app_key=dropbox_config.client_id,
            default_app_secret=dropbox_config.client_secret,
        )

        self.processor = MaterialProcessor(
            materials=await self.repositories.get_material_repository(),
            upload_records=await self.repositories.get_upload_record_repository(),
            rejection_logs=await self.repositories.get_rejection_log_repository(),
            accounts=accounts,
            storage=self.storage,
            dropbox=self.dropbox,
            selector=AccountSelector(accounts, dropbox_config.quota_ceiling_mb),
            lifecycle=lifecycle,
            accountant=UsageAccountant(
                accounts, require_atomic=self.config.processing.require_atomic_accounting
            ),
            upload_root=dropbox_config.upload_root,
            max_attempts=self.config.processing.max_attempts,
            use_db_tokens=dropbox_config.use_db_tokens,
            static_access_token=dropbox_config.static_access_token,
        )

        mode = "database account pool" if dropbox_config.use_db_tokens else "static access token"
        self.logger.info(f"Dropbox uploads use the {mode}")

    async def start(self):
        """Serve HTTP until shutdown."""
        self.logger.info("Starting Campus Bridge...")
        try:
            await self.server.serve()
        finally:
            await self.stop()

    async def stop(self):
        """Release network clients and database connections."""
        self.logger.info("Initiating graceful shutdown...")

        if self.dropbox:
            await self.dropbox.close()
        if self.storage:
            await self.storage.close()
        if self.repositories:
            await self.repositories.close()

        self.logger.info("Campus Bridge stopped cleanly")


async def main():
    """Main entry point for Campus Bridge."""
    app = CampusBridgeApp()
    try:
        await app.initialize()
        await app.start()
    except KeyboardInterrupt:
        await app.stop()
    except Exception as e:
        logging.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
