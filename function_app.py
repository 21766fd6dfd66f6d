"""
Azure Functions entry point
Hosts the FastAPI application on the Azure Functions Python v2 programming model
"""

import azure.functions as func

from main import app as fastapi_app

app = func.AsgiFunctionApp(app=fastapi_app, http_auth_level=func.AuthLevel.ANONYMOUS)
