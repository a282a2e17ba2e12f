"""
Registry archive download over HTTP(S).

The archive is several gigabytes, so it is streamed to disk with periodic
progress logs. Redirects are followed; any other non-200 final response,
timeout or connection failure aborts the run. There is no retry: the next
scheduled run starts over.
"""

import time
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode
import httpx
from core.exceptions import DownloadError
import logging

logger = logging.getLogger(__name__)

DOWNLOAD_BASE_URL = "https://business.juso.go.kr/api/jst/download"

# Percent-encoded "건물DB_전체분.zip"; encoded once more by urlencode,
# which is what the endpoint expects.
FILE_NAME_SUFFIX_ENCODED = "%EA%B1%B4%EB%AC%BCDB_%EC%A0%84%EC%B2%B4%EB%B6%84.zip"

END_OFFSET = "149056343"

REQUEST_HEADERS = {"User-Agent": "juso-address-importer", "Accept": "*/*"}


def build_download_url(month: str) -> str:
    """Full-registry download URL for a YYYYMM month"""
    params = {
        "regYmd": month[:4],
        "reqType": "ALLRDNM",
        "ctprvnCd": "00",
        "stdde": month,
        "fileName": f"{month}_{FILE_NAME_SUFFIX_ENCODED}",
        "realFileName": f"{month}ALLRDNM00.zip",
        "intFileNo": "0",
        "intNum": "0",
        "_Html5": "true",
        "_StartOffset": "0",
        "_EndOffset": END_OFFSET,
    }
    return f"{DOWNLOAD_BASE_URL}?{urlencode(params)}"


def human_bytes(num: float) -> str:
    if not num or num <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    value = float(num)
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value)} {units[i]}" if i == 0 else f"{value:.1f} {units[i]}"


def percent(done: int, total: int) -> float:
    if not total or total <= 0:
        return 0.0
    return max(0.0, min(100.0, done / total * 100))


class ArchiveDownloader:
    """
    Stream the registry zip to a local file.

    Attributes:
        timeout: Per-operation timeout in seconds (connect, read, write)
        log_every: Seconds between progress log lines
    """

    def __init__(
        self,
        timeout: float = 600.0,
        log_every: float = 1.5,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.timeout = timeout
        self.log_every = log_every
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers=REQUEST_HEADERS,
            transport=self.transport
        )

    async def _head_content_length(self, client: httpx.AsyncClient, url: str) -> int:
        """Size from a HEAD request; 0 when unknown"""
        try:
            response = await client.head(url)
        except httpx.HTTPError as e:
            logger.warning(f"HEAD request failed, size unknown: {e}")
            return 0
        return _content_length(response)

    async def download(self, url: str, dest_path: Path) -> int:
        """
        Download url into dest_path.

        Returns:
            Number of bytes written

        Raises:
            DownloadError: On non-200 response, timeout or network failure
        """
        dest_path = Path(dest_path)
        dest_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with self._client() as client:
                async with client.stream("GET", url) as response:
                    if response.status_code != 200:
                        raise DownloadError(
                            f"HTTP {response.status_code}",
                            context={"url": url, "status_code": response.status_code}
                        )

                    total = _content_length(response)
                    if total <= 0:
                        total = await self._head_content_length(client, url)

                    return await self._write_body(response, dest_path, total)

        except DownloadError:
            raise

        except httpx.TimeoutException as e:
            raise DownloadError(
                "Download timed out",
                context={"url": url, "timeout": self.timeout},
                original_exception=e
            )

        except httpx.HTTPError as e:
            raise DownloadError(
                "Download failed",
                context={"url": url},
                original_exception=e
            )

    async def _write_body(self, response: httpx.Response, dest_path: Path, total: int) -> int:
        total_str = human_bytes(total) if total > 0 else "?"
        logger.info(f"[download] start total={total_str}")

        downloaded = 0
        last_log_at = time.monotonic() - self.log_every

        with open(dest_path, "wb") as out:
            async for chunk in response.aiter_bytes():
                out.write(chunk)
                downloaded += len(chunk)

                now = time.monotonic()
                if now - last_log_at >= self.log_every:
                    last_log_at = now
                    logger.info(f"[download] {self._progress(downloaded, total)}")

        logger.info(f"[download] done {self._progress(downloaded, total)}")
        return downloaded

    @staticmethod
    def _progress(downloaded: int, total: int) -> str:
        if total > 0:
            return f"{percent(downloaded, total):.1f}% ({human_bytes(downloaded)}/{human_bytes(total)})"
        return f"?% ({human_bytes(downloaded)}/?)"


def _content_length(response: httpx.Response) -> int:
    try:
        return int(response.headers.get("content-length", 0))
    except ValueError:
        return 0
