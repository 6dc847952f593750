"""
Swagger/OpenAPI configuration for the Petgas Portal API
"""

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api/docs",
}

SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Petgas Portal API",
        "description": "Client portal and admin panel API: plastic mitigation and Petgas consumption logs, evidence images, reward catalog and PGC balances",
        "contact": {"email": "support@petgas.com.mx"},
        "version": "1.0.0",
    },
    "host": "",
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": 'Client session token or admin token. Example: "Authorization: Bearer {token}"',
        }
    },
    "security": [{"Bearer": []}],
    "tags": [
        {"name": "Auth", "description": "Admin login and client sessions"},
        {"name": "Client Profile", "description": "Profile and dashboard of the signed-in client"},
        {"name": "Client Activity", "description": "Mitigation and consumption logging"},
        {"name": "Admin Clients", "description": "Client management"},
        {"name": "Admin Mitigation", "description": "Review of mitigation entries and evidence"},
        {"name": "Admin Consumption", "description": "Consumption entry management"},
        {"name": "Admin Rewards", "description": "Reward catalog and awarding"},
        {"name": "Admin Dashboard", "description": "Overview numbers"},
    ],
    "definitions": {
        "Error": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "error"},
                "kind": {
                    "type": "string",
                    "enum": [
                        "validation_error",
                        "not_found",
                        "conflict",
                        "upload_error",
                        "partial_failure",
                        "transient_error",
                    ],
                },
                "message": {"type": "string"},
                "details": {"type": "string"},
                "partial_failure": {"type": "boolean"},
                "retryable": {"type": "boolean"},
            },
        },
        "Success": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "success"},
                "message": {"type": "string"},
            },
        },
        "Client": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "format": "uuid"},
                "email": {"type": "string", "format": "email"},
                "full_name": {"type": "string"},
                "solana_wallet": {"type": "string"},
                "bnb_wallet": {"type": "string"},
                "pgc_balance": {"type": "number", "format": "float", "example": 50.0},
                "created_at": {"type": "string", "format": "date-time"},
                "updated_at": {"type": "string", "format": "date-time"},
            },
        },
        "EvidenceImage": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "entry_id": {"type": "string"},
                "image_url": {"type": "string"},
                "uploaded_at": {"type": "string", "format": "date-time"},
            },
        },
        "MitigationEntry": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "client_id": {"type": "string"},
                "mitigated_plastic_kg": {"type": "number", "format": "float", "example": 12.5},
                "status": {
                    "type": "string",
                    "enum": ["pending", "approved", "rejected"],
                },
                "created_at": {"type": "string", "format": "date-time"},
                "updated_at": {"type": "string", "format": "date-time"},
                "images": {
                    "type": "array",
                    "items": {"$ref": "#/definitions/EvidenceImage"},
                },
            },
        },
        "ConsumptionEntry": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "client_id": {"type": "string"},
                "liters_consumed": {"type": "number", "format": "float"},
                "transaction_date": {"type": "string", "format": "date-time"},
                "created_at": {"type": "string", "format": "date-time"},
            },
        },
        "Reward": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "name": {"type": "string"},
                "description": {"type": "string"},
                "pgc_amount": {"type": "number", "format": "float", "example": 50.0},
                "criteria_plastic_kg": {"type": "number", "format": "float"},
                "criteria_petgas_liters": {"type": "number", "format": "float"},
                "created_at": {"type": "string", "format": "date-time"},
            },
        },
        "ClientReward": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "client_id": {"type": "string"},
                "reward_id": {"type": "string"},
                "pgc_amount": {"type": "number", "format": "float"},
                "awarded_at": {"type": "string", "format": "date-time"},
                "awarded_by": {"type": "string"},
                "notes": {"type": "string"},
                "reward": {"$ref": "#/definitions/Reward"},
            },
        },
    },
}
