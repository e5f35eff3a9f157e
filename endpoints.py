# Firestarter (Pipe Network) routes; update if endpoints change.

BASE_URL = "https://us-west-01-firestarter.pipenetwork.com"

AUTH = {
    "create_user": {
        "method": "POST",
        "path": "/users",
    },
    "login": {
        "method": "POST",
        "path": "/auth/login",
    },
}

WALLET = {
    "balance": {
        "method": "POST",
        "path": "/checkWallet",
    },
    "token_balance": {
        "method": "POST",
        "path": "/checkCustomToken",
    },
}

FILES = {
    "upload": {
        "method": "POST",
        "path": "/upload",
    },
    "download": {
        "method": "GET",
        "path": "/download-stream",
    },
    "delete": {
        "method": "POST",
        "path": "/deleteFile",
    },
    "public_link": {
        "method": "POST",
        "path": "/createPublicLink",
    },
}

PUBLIC = {
    "public_download": {
        "method": "GET",
        "path": "/publicDownload",
    },
}
