"""
Response helpers shared by the JSON blueprints
"""


def no_store(response):
    """Ballot and period data change underneath the client; never cache it"""
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response
