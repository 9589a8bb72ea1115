"""Key conventions for the record store.

Primary records live at `<entity>:<id>`. Pointer records that emulate a
foreign-key lookup live at `<entity>:by-<relation>:<fk>:<id>` and hold the
bare id of the primary record.
"""

USERS = 'users:'
SELLERS = 'sellers:'
LISTINGS = 'listings:'
LISTING_IMAGES = 'listing-images:'
ORDERS = 'orders:'
REVIEWS = 'reviews:'
REPORTS = 'reports:'
VERIFICATION_REQUESTS = 'verification-requests:'

def user(user_id: str) -> str:
    return f'{USERS}{user_id}'

def seller(user_id: str) -> str:
    return f'{SELLERS}{user_id}'

def listing(listing_id: str) -> str:
    return f'{LISTINGS}{listing_id}'

def listings_by_seller(seller_id: str) -> str:
    return f'{LISTINGS}by-seller:{seller_id}:'

def listing_by_seller(seller_id: str, listing_id: str) -> str:
    return f'{listings_by_seller(seller_id)}{listing_id}'

def listing_images(listing_id: str) -> str:
    return f'{LISTING_IMAGES}{listing_id}:'

def listing_image(listing_id: str, image_id: str) -> str:
    return f'{listing_images(listing_id)}{image_id}'

def order(order_id: str) -> str:
    return f'{ORDERS}{order_id}'

def orders_by_buyer(buyer_id: str) -> str:
    return f'{ORDERS}by-buyer:{buyer_id}:'

def order_by_buyer(buyer_id: str, order_id: str) -> str:
    return f'{orders_by_buyer(buyer_id)}{order_id}'

def orders_by_seller(seller_id: str) -> str:
    return f'{ORDERS}by-seller:{seller_id}:'

def order_by_seller(seller_id: str, order_id: str) -> str:
    return f'{orders_by_seller(seller_id)}{order_id}'

def review(review_id: str) -> str:
    return f'{REVIEWS}{review_id}'

def reviews_by_seller(seller_id: str) -> str:
    return f'{REVIEWS}by-seller:{seller_id}:'

def review_by_seller(seller_id: str, review_id: str) -> str:
    return f'{reviews_by_seller(seller_id)}{review_id}'

def report(report_id: str) -> str:
    return f'{REPORTS}{report_id}'

def verification_request(request_id: str) -> str:
    return f'{VERIFICATION_REQUESTS}{request_id}'

def verification_requests_by_listing(listing_id: str) -> str:
    return f'{VERIFICATION_REQUESTS}by-listing:{listing_id}:'

def verification_request_by_listing(listing_id: str, request_id: str) -> str:
    return f'{verification_requests_by_listing(listing_id)}{request_id}'
