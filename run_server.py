import uvicorn
import os

if __name__ == "__main__":
    port = int(os.environ.get("ASSET_REGISTRY_PORT", "8000"))

    print("Starting Asset Registry API Server...")
    print(f"Docs available at: http://localhost:{port}/docs")

    uvicorn.run(
        "asset_registry.api.server:app",
        host="0.0.0.0",
        port=port,
        reload=True
    )
