from typing import List

from pydantic import BaseModel, Field, StrictInt, StrictStr


class CrawlParams(BaseModel):
    targets: List[StrictStr] = Field(..., min_length=1, description="Start URLs for the crawl")
    delay: StrictInt = Field(..., ge=0, description="Politeness delay between requests (ms)")
    crawling_concurrency: StrictInt = Field(..., gt=0, description="Concurrent fetchers")
    processing_concurrency: StrictInt = Field(..., gt=0, description="Concurrent item processors")


class CrawlAck(BaseModel):
    items: List[str] = Field(..., description="Opaque acknowledgment returned by the server")
