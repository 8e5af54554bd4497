"""Logging configuration for the base-deployments command line."""

import json
import logging
import time


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record):
        data = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


def setup_logging(level=logging.INFO, json_format=False):
    root = logging.getLogger()
    root.setLevel(level)

    # drop handlers left by a previous call
    for h in list(root.handlers):
        root.removeHandler(h)

    h = logging.StreamHandler()
    if json_format:
        h.setFormatter(JsonFormatter())
    else:
        h.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root.addHandler(h)

    # urllib3 logs every retry at DEBUG, including full URLs with API keys
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
    return h
