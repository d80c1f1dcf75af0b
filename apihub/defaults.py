"""Baseline definitions seeded into an empty catalogue."""

JSON_HEADERS = {"Content-Type": "application/json"}

DEFAULT_DEFINITIONS: dict[str, dict] = {
    "login": {
        "name": "User login",
        "url": "/api/login",
        "method": "POST",
        "category": "auth",
        "description": "Authenticate a user",
        "timeout": 10000,
        "headers": JSON_HEADERS,
    },
    "logout": {
        "name": "User logout",
        "url": "/api/logout",
        "method": "POST",
        "category": "auth",
        "timeout": 5000,
        "headers": JSON_HEADERS,
    },
    "getUserInfo": {
        "name": "Current user",
        "url": "/api/user",
        "category": "auth",
        "description": "Profile of the signed-in user",
        "timeout": 5000,
        "retries": 1,
        "cache_time": 60000,
        "headers": JSON_HEADERS,
    },
    "getUsers": {
        "name": "User list",
        "url": "/api/users",
        "category": "admin",
        "timeout": 10000,
        "retries": 1,
        "cache_time": 60000,
        "headers": JSON_HEADERS,
    },
    "getUserById": {
        "name": "User details",
        "url": "/api/users/{id}",
        "category": "admin",
        "timeout": 8000,
        "retries": 1,
        "cache_time": 60000,
        "headers": JSON_HEADERS,
    },
    "queryData": {
        "name": "Data query",
        "url": "/api/data/query",
        "method": "POST",
        "category": "data",
        "description": "Generic data query",
        "timeout": 15000,
        "retries": 1,
        "cache_time": 60000,
        "headers": JSON_HEADERS,
    },
    "getHistoryData": {
        "name": "History data",
        "url": "/api/data/history",
        "method": "POST",
        "category": "data",
        "timeout": 15000,
        "retries": 1,
        "cache_time": 60000,
        "headers": JSON_HEADERS,
    },
    "getTrendData": {
        "name": "Trend data",
        "url": "/api/trend-data",
        "method": "POST",
        "category": "data",
        "timeout": 15000,
        "retries": 1,
        "cache_time": 60000,
        "headers": JSON_HEADERS,
    },
    "getRealtimeTrendData": {
        "name": "Realtime trend data",
        "url": "/api/realtime-trend-data",
        "method": "POST",
        "category": "data",
        "timeout": 10000,
        "retries": 1,
        "cache_time": 5000,
        "headers": JSON_HEADERS,
    },
    "getDeviceStatus": {
        "name": "Device status",
        "url": "/api/device/status",
        "category": "device",
        "timeout": 10000,
        "retries": 2,
        "cache_time": 30000,
        "headers": JSON_HEADERS,
    },
    "controlDevice": {
        "name": "Device control",
        "url": "/api/device/control",
        "method": "POST",
        "category": "device",
        "description": "Send a control command to a device",
        "timeout": 8000,
        "retries": 2,
        "headers": JSON_HEADERS,
    },
    "getNotifications": {
        "name": "Notifications",
        "url": "/api/notifications",
        "category": "system",
        "timeout": 10000,
        "retries": 1,
        "cache_time": 60000,
        "headers": JSON_HEADERS,
    },
    "getReport": {
        "name": "Report",
        "url": "/api/reports/:reportId",
        "category": "report",
        "timeout": 20000,
        "retries": 1,
        "cache_time": 300000,
        "headers": JSON_HEADERS,
    },
}
