"""Generate the OpenAPI schema consumed by the dashboard clients."""

import json

from orderflow.main import app

if __name__ == "__main__":
    print(json.dumps(app.openapi()))
