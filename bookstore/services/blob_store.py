# bookstore/services/blob_store.py
from functools import lru_cache
from typing import Optional

import boto3

from bookstore.config import settings


@lru_cache(maxsize=1)
def get_s3_client():
    return boto3.client(
        "s3",
        endpoint_url=f"https://{settings.r2_account_id}.r2.cloudflarestorage.com",
        aws_access_key_id=settings.r2_access_key_id,
        aws_secret_access_key=settings.r2_secret_access_key,
        region_name="auto",
    )


def signed_url(key: Optional[str], expires: Optional[int] = None) -> Optional[str]:
    """Presigned GET url for a cover image key, None when there is no image."""
    if not key:
        return None

    return get_s3_client().generate_presigned_url(
        "get_object",
        Params={"Bucket": settings.r2_bucket_name, "Key": key},
        ExpiresIn=expires or settings.signed_url_expires,
    )
