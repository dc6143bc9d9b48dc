from .base import *  # noqa

DEBUG = True

# Use local memory cache in development to avoid requiring Redis.
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# PayFast sandbox does not send from the production address ranges.
PAYFAST_SANDBOX = True
PAYFAST_PROCESS_URL = "https://sandbox.payfast.co.za/eng/process"
PAYFAST_VALIDATE_URL = "https://sandbox.payfast.co.za/eng/query/validate"
