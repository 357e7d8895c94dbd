"""
Run the Solar CRM API with uvicorn.
"""
import uvicorn

from solar_crm.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    print(f"Starting {settings.app_name}...")
    print(f"Access at: http://{settings.host}:{settings.port}{settings.api_prefix}")
    print("Press Ctrl+C to stop")
    print("-" * 40)

    uvicorn.run(
        "solar_crm.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
