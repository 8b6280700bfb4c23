"""
Descarga de páginas para los scrapers.

- HttpFetcher: requests HTTP planos con aiohttp (default)
- BrowserFetcher: Chromium headless con Playwright, para portales que
  renderizan los resultados con JavaScript
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp
import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    async_playwright,
)

from tasador.config import get_settings
from tasador.exceptions import FetchError

logger = structlog.get_logger()

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


def browser_headers(accept_language: Optional[str] = None, referer: Optional[str] = None) -> dict:
    """Headers de un navegador real para los requests a los portales."""
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,*/*;q=0.8"
        ),
        "Accept-Language": accept_language or get_settings().accept_language,
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "Cache-Control": "max-age=0",
    }
    if referer:
        headers["Referer"] = referer
    return headers


class BaseFetcher(ABC):
    """Interfaz común de descarga."""

    @abstractmethod
    async def fetch_text(self, url: str, headers: Optional[dict] = None) -> str:
        """
        Descarga una página y devuelve el HTML.

        Raises:
            FetchError: Error de red, timeout o status no exitoso
        """
        pass

    @abstractmethod
    async def probe(self, url: str, headers: Optional[dict] = None) -> bool:
        """Chequeo liviano de que el sitio responde."""
        pass

    async def close(self) -> None:
        """Libera recursos. No-op por default."""
        return None


class HttpFetcher(BaseFetcher):
    """
    Fetcher HTTP con aiohttp y timeout por request.

    La sesión se crea en el primer request y se reutiliza hasta close().
    """

    def __init__(self, timeout: Optional[float] = None):
        settings = get_settings()
        self.timeout = timeout or settings.fetch_timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def fetch_text(self, url: str, headers: Optional[dict] = None) -> str:
        try:
            async with self._get_session().get(url, headers=headers) as response:
                if response.status >= 400:
                    raise FetchError(
                        f"HTTP {response.status}: {response.reason}",
                        url=url,
                        status=response.status,
                    )
                return await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError("Error de red descargando página", url=url, cause=e) from e

    async def fetch_bytes(
        self, url: str, headers: Optional[dict] = None
    ) -> tuple[bytes, Optional[str]]:
        """Descarga un recurso binario. Devuelve (contenido, content-type)."""
        try:
            async with self._get_session().get(url, headers=headers) as response:
                if response.status >= 400:
                    raise FetchError(
                        f"HTTP {response.status}: {response.reason}",
                        url=url,
                        status=response.status,
                    )
                return await response.read(), response.headers.get("Content-Type")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError("Error de red descargando recurso", url=url, cause=e) from e

    async def probe(self, url: str, headers: Optional[dict] = None) -> bool:
        try:
            session = self._get_session()
            async with session.head(url, headers=headers, allow_redirects=True) as response:
                return response.status < 400
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("Probe fallido", url=url, error=str(e))
            return False

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


class BrowserFetcher(BaseFetcher):
    """
    Fetcher con Playwright.

    El browser se inicializa en el primer fetch y se reutiliza hasta close().
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        render_wait_ms: int = 2000,
        locale: str = "fr-FR",
    ):
        settings = get_settings()
        self.timeout = timeout or settings.fetch_timeout_seconds
        self.render_wait_ms = render_wait_ms
        self.locale = locale
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._init_lock = asyncio.Lock()
        self._http = HttpFetcher(timeout=self.timeout)

    @property
    def is_started(self) -> bool:
        return self._context is not None

    async def _init_browser(self) -> BrowserContext:
        """Inicializa Playwright y el browser si todavía no existe."""
        async with self._init_lock:
            if self._context:
                return self._context

            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=True,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                    "--no-sandbox",
                ],
            )
            self._context = await self._browser.new_context(
                viewport={"width": 1920, "height": 1080},
                user_agent=USER_AGENT,
                locale=self.locale,
            )
            # Bloquear recursos innecesarios para acelerar
            await self._context.route(
                "**/*.{png,jpg,jpeg,gif,svg,ico,woff,woff2}",
                lambda route: route.abort(),
            )
            logger.info("Browser inicializado")
            return self._context

    async def fetch_text(self, url: str, headers: Optional[dict] = None) -> str:
        try:
            context = await self._init_browser()
            page = await context.new_page()
        except PlaywrightError as e:
            raise FetchError("No se pudo inicializar el browser", url=url, cause=e) from e

        try:
            if headers:
                # El user agent ya lo fija el contexto
                extra = {k: v for k, v in headers.items() if k.lower() != "user-agent"}
                await page.set_extra_http_headers(extra)

            response = await page.goto(
                url, wait_until="domcontentloaded", timeout=self.timeout * 1000
            )
            if response is None:
                raise FetchError("No se recibió respuesta HTTP", url=url)
            if response.status >= 400:
                raise FetchError(f"HTTP {response.status}", url=url, status=response.status)

            # Esperar a que cargue el contenido dinámico
            await page.wait_for_timeout(self.render_wait_ms)
            return await page.content()

        except PlaywrightError as e:
            raise FetchError("Error navegando con el browser", url=url, cause=e) from e
        finally:
            await page.close()

    async def probe(self, url: str, headers: Optional[dict] = None) -> bool:
        return await self._http.probe(url, headers=headers)

    async def close(self) -> None:
        """Cierra el browser y libera recursos."""
        await self._http.close()
        try:
            if self._context:
                await self._context.close()
            if self._browser:
                await self._browser.close()
            if self._playwright:
                await self._playwright.stop()
            if self._context:
                logger.info("Browser cerrado")
        except PlaywrightError as e:
            logger.warning("Error cerrando browser", error=str(e))
        finally:
            self._context = None
            self._browser = None
            self._playwright = None
