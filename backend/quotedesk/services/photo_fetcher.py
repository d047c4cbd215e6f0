"""Reference photo fetcher.

下載報價明細的參考圖片，解碼後轉為 PNG 供 Excel 嵌入。

- 以 ``asyncio.Semaphore`` 限制同時下載數量
- 每張圖片有獨立逾時
- 以串流方式下載，超過大小上限立即中止，不會先把整個檔案讀進記憶體
- 單張失敗只記錄 warning，回傳 None，不影響其他項目
"""

import asyncio
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Sequence

import httpx
from PIL import Image

from ..config import settings

logger = logging.getLogger(__name__)


class PhotoTooLargeError(Exception):
    """圖片超過大小限制."""

    pass


@dataclass
class FetchedPhoto:
    """已下載並轉為 PNG 的圖片."""

    url: str
    content: bytes
    width: int
    height: int


def decode_image(data: bytes) -> tuple[bytes, int, int]:
    """
    驗證並將圖片轉為 PNG.

    Args:
        data: 原始圖片 bytes（任何 Pillow 可讀格式）

    Returns:
        (png_bytes, width, height)

    Raises:
        PIL.UnidentifiedImageError: 無法辨識的圖片
    """
    # verify() 之後 Image 物件不可再用，需重新開啟
    with Image.open(BytesIO(data)) as unverified:
        unverified.verify()

    with Image.open(BytesIO(data)) as img:
        if img.mode not in ("RGB", "RGBA", "L", "LA"):
            img = img.convert("RGBA")
        output = BytesIO()
        img.save(output, format="PNG")
        return output.getvalue(), img.width, img.height


class PhotoFetcher:
    """Download reference photos with bounded concurrency and per-photo timeouts."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        concurrency: Optional[int] = None,
        max_bytes: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize fetcher.

        Args:
            timeout_seconds: 單張圖片逾時秒數，預設使用 settings
            concurrency: 同時下載上限，預設使用 settings
            max_bytes: 單張圖片大小上限
            transport: 自訂 httpx transport（測試用）
        """
        self.timeout_seconds = timeout_seconds or settings.photo_fetch_timeout_seconds
        self.concurrency = max(1, concurrency or settings.photo_fetch_concurrency)
        self.max_bytes = max_bytes or settings.photo_max_bytes
        self._transport = transport

    async def fetch_all(self, urls: Sequence[str]) -> list[Optional[FetchedPhoto]]:
        """
        依序號下載所有圖片.

        Args:
            urls: 每個明細的圖片 URL（可為空字串）

        Returns:
            與 urls 等長的列表，失敗或無 URL 的位置為 None
        """
        if not any(url and url.strip() for url in urls):
            return [None] * len(urls)

        semaphore = asyncio.Semaphore(self.concurrency)
        async with httpx.AsyncClient(
            transport=self._transport,
            follow_redirects=True,
            timeout=self.timeout_seconds,
        ) as client:

            async def bounded(index: int, url: str) -> Optional[FetchedPhoto]:
                async with semaphore:
                    return await self._fetch_one(client, index, url)

            return list(
                await asyncio.gather(*(bounded(i, url) for i, url in enumerate(urls)))
            )

    async def _fetch_one(
        self,
        client: httpx.AsyncClient,
        index: int,
        url: str,
    ) -> Optional[FetchedPhoto]:
        """下載單張圖片，任何失敗都回傳 None."""
        url = (url or "").strip()
        if not url:
            logger.debug(f"Item #{index + 1} has no reference photo")
            return None

        try:
            data = await asyncio.wait_for(self._download(client, url), timeout=self.timeout_seconds)
            content, width, height = decode_image(data)
            logger.debug(f"Fetched photo for item #{index + 1}: {width}x{height}px")
            return FetchedPhoto(url=url, content=content, width=width, height=height)

        except Exception as e:
            logger.warning(f"Failed to load image for item #{index + 1} ({url}): {e!r}")
            return None

    async def _download(self, client: httpx.AsyncClient, url: str) -> bytes:
        """串流下載；宣告或實際收到的大小超過 max_bytes 時立即中止."""
        async with client.stream("GET", url) as response:
            response.raise_for_status()

            declared = response.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > self.max_bytes:
                raise PhotoTooLargeError(f"Content-Length {declared} exceeds limit of {self.max_bytes}")

            data = bytearray()
            async for chunk in response.aiter_bytes():
                data.extend(chunk)
                if len(data) > self.max_bytes:
                    raise PhotoTooLargeError(f"Body exceeds limit of {self.max_bytes} bytes")
            return bytes(data)


def get_photo_fetcher() -> PhotoFetcher:
    """取得使用預設設定的 PhotoFetcher."""
    return PhotoFetcher()
