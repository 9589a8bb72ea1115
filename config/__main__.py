"""Command line interface for testing configuration loading"""
from . import settings_conf
from pathlib import Path

SECRET_KEYS = {'auth_service_key'}

def main():
    """Display loaded configuration"""
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings_conf.items():
        if key in SECRET_KEYS and value:
            value = '********'
        print(f"{key}: {value}")

    # Save example configuration file next to where settings.conf is read
    with open(Path("settings.conf.example"), "w") as f:
        f.write("""[DEFAULT]
# Key-value store location (CockroachDB or PostgreSQL)
db_url = postgresql://root@localhost:26257/marketplace?sslmode=disable
kv_table = kv_store
# 'postgres' or 'memory'
store_backend = postgres

# Identity provider
auth_url = https://auth.example.com
auth_service_key = service-role-key
auth_timeout = 10

currency = ZAR
listing_page_size = 50
order_write_attempts = 3
log_level = INFO
api_host = 0.0.0.0
api_port = 8000
""")

if __name__ == "__main__":
    main()
