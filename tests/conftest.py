"""
Fixtures compartidas: fetchers y proveedores LLM falsos, settings sin
.env y HTML de ejemplo de cada fuente.
"""

import json
import re
from typing import Callable, Optional, Union

import pytest

from tasador.analysis.llm_providers import BaseLLMProvider, LLMResponse
from tasador.config import Settings
from tasador.exceptions import FetchError
from tasador.models import ImageFeatures, ListingCandidate, SearchQueries
from tasador.scrapers.fetchers import BaseFetcher

# PNG de 1x1 recortado: alcanza para los tests de carga
PNG_BASE64 = "iVBORw0KGgoAAAANSUhEUg=="
PNG_DATA_URL = f"data:image/png;base64,{PNG_BASE64}"


class FakeFetcher(BaseFetcher):
    """Fetcher en memoria. `pages` mapea fragmento de URL -> HTML."""

    def __init__(
        self,
        pages: Optional[dict[str, str]] = None,
        default: str = "",
        error: Optional[Exception] = None,
        available: bool = True,
        images: Optional[dict[str, Union[tuple[bytes, str], Exception]]] = None,
    ):
        self.pages = pages or {}
        self.default = default
        self.error = error
        self.available = available
        self.images = images or {}
        self.requests: list[tuple[str, Optional[dict]]] = []
        self.closed = False

    async def fetch_text(self, url: str, headers: Optional[dict] = None) -> str:
        self.requests.append((url, headers))
        if self.error:
            raise self.error
        for fragment, html in self.pages.items():
            if fragment in url:
                return html
        return self.default

    async def fetch_bytes(self, url: str, headers: Optional[dict] = None):
        self.requests.append((url, headers))
        value = self.images.get(url)
        if value is None:
            raise FetchError("HTTP 404: Not Found", url=url, status=404)
        if isinstance(value, Exception):
            raise value
        return value

    async def probe(self, url: str, headers: Optional[dict] = None) -> bool:
        return self.available

    async def close(self) -> None:
        self.closed = True


class FakeProvider(BaseLLMProvider):
    """
    Proveedor LLM falso.

    Responde con `handler(user_prompt, images)` si se pasa, o consume
    `responses` en orden. Un Exception en la respuesta se lanza.
    """

    provider_name = "fake"

    def __init__(
        self,
        responses: Optional[list] = None,
        handler: Optional[Callable] = None,
    ):
        self.responses = list(responses or [])
        self.handler = handler
        self.calls: list[dict] = []

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        images=None,
        temperature: float = 0.2,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "images": images or [],
                "json_mode": json_mode,
            }
        )
        if self.handler:
            result = self.handler(user_prompt, images or [])
        else:
            result = self.responses.pop(0) if self.responses else ""

        if isinstance(result, Exception):
            raise result
        if not isinstance(result, str):
            result = json.dumps(result)
        return LLMResponse(text=result, model="fake-model", provider=self.provider_name)


def listing_indices(prompt: str) -> list[int]:
    """Índices globales que el verificador puso en el prompt."""
    return [int(i) for i in re.findall(r"^\[(\d+)\]", prompt, re.MULTILINE)]


def verification_payload(index: int, is_match: bool, confidence: float, reason: str = "") -> dict:
    return {
        "listing_index": index,
        "verification": {
            "is_match": is_match,
            "confidence": confidence,
            "match_details": {
                "brand_match": is_match,
                "model_match": is_match,
                "condition_match": False,
                "size_match": False,
                "color_match": is_match,
            },
            "reason": reason or ("same item" if is_match else "different item"),
        },
    }


def make_listing(
    source: str = "vinted",
    title: str = "Sac Longchamp Le Pliage",
    price: float = 45.0,
    url: Optional[str] = None,
) -> ListingCandidate:
    return ListingCandidate(
        source=source,
        title=title,
        price=price,
        url=url or f"https://example.com/{source}/{int(price * 100)}",
    )


# =============================================================================
# HTML de ejemplo
# =============================================================================


def price_text(price: float) -> str:
    """Formato francés: coma decimal."""
    return f"{price:.2f}".replace(".", ",")


def vinted_html(prices: list[float], title: str = "Sac Longchamp Le Pliage") -> str:
    items = "".join(
        f"""
        <div class="feed-grid__item">
          <div class="new-item-box__container">
            <a href="/items/{i}-sac" title="{title} {i}">
              <img src="https://images1.vinted.net/t/{i}.jpg" alt="{title}">
            </a>
            <p class="new-item-box__title">{title} {i}</p>
            <span class="new-item-box__price">{price_text(price)} €</span>
            <span class="new-item-box__owner">vendeuse{i}</span>
          </div>
        </div>"""
        for i, price in enumerate(prices)
    )
    return f"<html><body><div class='feed-grid'>{items}</div></body></html>"


def ebay_html(prices: list[float], title: str = "Longchamp Le Pliage") -> str:
    items = "".join(
        f"""
        <li class="s-item">
          <a class="s-item__link" href="https://www.ebay.fr/itm/{1000 + i}">
            <div class="s-item__title"><span>{title} #{i}</span></div>
          </a>
          <div class="s-item__subtitle"><span class="SECONDARY_INFO">Occasion</span></div>
          <span class="s-item__price">{price:.2f} EUR</span>
        </li>"""
        for i, price in enumerate(prices)
    )
    return f"<html><body><ul class='srp-results'>{items}</ul></body></html>"


VINTED_HTML = """
<html><body>
<div class="feed-grid">
  <div class="feed-grid__item">
    <div class="new-item-box__container">
      <a href="/items/123-sac-longchamp" title="Sac Longchamp Le Pliage">
        <img src="https://images1.vinted.net/t/123.jpg" alt="Sac Longchamp Le Pliage">
      </a>
      <p class="new-item-box__title">Sac Longchamp Le Pliage</p>
      <span class="new-item-box__price">45,00 €</span>
      <span class="new-item-box__owner">marie75</span>
    </div>
  </div>
  <div class="feed-grid__item">
    <div class="new-item-box__container">
      <a href="https://www.vinted.fr/items/456-pliage-noir" title="Longchamp pliage noir">
        <img src="https://images1.vinted.net/t/456.jpg">
      </a>
      <span class="new-item-box__price">1 200,50 €</span>
    </div>
  </div>
  <div class="feed-grid__item">
    <div class="new-item-box__container">
      <a href="/items/789"></a>
      <p class="new-item-box__title">Sans prix</p>
      <span class="new-item-box__price">Prix sur demande</span>
    </div>
  </div>
</div>
</body></html>
"""

EBAY_HTML = """
<html><body>
<ul class="srp-results">
  <li class="s-item s-item__pl-on-bottom">
    <div class="s-item__title">Shop on eBay</div>
    <span class="s-item__price">20,00 EUR</span>
    <a class="s-item__link" href="https://www.ebay.fr/itm/000">x</a>
  </li>
  <li class="s-item">
    <a class="s-item__link" href="https://www.ebay.fr/itm/111">
      <div class="s-item__title"><span>Longchamp Le Pliage Original</span></div>
    </a>
    <div class="s-item__subtitle"><span class="SECONDARY_INFO">Occasion</span></div>
    <span class="s-item__price">52,90 EUR</span>
    <span class="s-item__seller-info-text">vendeur_pro</span>
  </li>
  <li class="s-item">
    <a class="s-item__link" href="https://scam.example.com/itm/222">
      <div class="s-item__title">Longchamp externe</div>
    </a>
    <span class="s-item__price">10,00 EUR</span>
  </li>
</ul>
</body></html>
"""

VESTIAIRE_HTML = """
<html><body>
<div class="product-card">
  <a href="/women-bags/handbags/longchamp/pliage-123.shtml">
    <img data-src="https://images.vestiairecollective.com/123.jpg">
  </a>
  <span class="product-card__brand">Longchamp</span>
  <span class="product-card__name">Le Pliage handbag</span>
  <span class="product-card__price">€85</span>
  <span class="product-card__condition">Very good condition</span>
</div>
</body></html>
"""

LEBONCOIN_HTML = """
<html><body>
<a data-qa-id="aditem_container" href="/ad/accessoires_bagagerie/2456.htm">
  <p data-qa-id="aditem_title">Sac Longchamp pliage</p>
  <span data-qa-id="aditem_price">40 €</span>
  <p data-qa-id="aditem_location">Paris 75011</p>
</a>
</body></html>
"""

GOOGLE_SHOPPING_HTML = """
<html><body>
<div class="sh-dgr__content">
  <h3 class="tAxDx">Longchamp Le Pliage Original M</h3>
  <span class="a8Pemb">125,00 €</span>
  <div class="aULzUe">Galeries Lafayette</div>
</div>
<div class="sh-dgr__content">
  <a href="/shopping/product/1"><h3 class="tAxDx">Longchamp Le Pliage Original L</h3></a>
  <span class="a8Pemb">145,00 €</span>
  <div class="aULzUe">Longchamp</div>
</div>
<div class="sh-dgr__content">
  <h3 class="tAxDx">Longchamp Le Pliage Original S</h3>
  <span class="a8Pemb">99,00 €</span>
  <div class="aULzUe">Printemps</div>
</div>
</body></html>
"""


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings aisladas del entorno, sin esperas del scheduler."""
    return Settings(
        _env_file=None,
        llm_provider="gemini",
        gemini_api_key=None,
        groq_api_key=None,
        scheduler_interval_seconds=0,
        browser_sources=[],
    )


@pytest.fixture
def sample_features() -> ImageFeatures:
    return ImageFeatures(
        brand="Longchamp",
        model="Le Pliage",
        category="handbag",
        colors=["navy"],
        materials=["nylon", "leather"],
        patterns=[],
        condition="very good condition",
        search_queries=SearchQueries(
            primary="Longchamp Le Pliage",
            secondary=["sac Longchamp", "Le Pliage nylon"],
            visual_features="navy nylon body, brown leather flap",
        ),
        estimated_retail_price=None,
    )
