from dressmart import create_app
from dressmart.seed import setup_database

app = create_app()


def main():
    with app.app_context():
        try:
            result = setup_database()
        except Exception as e:
            print(f"Error during database setup: {e}")
            print("\nMake sure:")
            print("1. MongoDB is running")
            print("2. MONGO_URI is correct in .env file")
            return 1

    print("Indexes created successfully")
    if result['admin_created']:
        print("Admin user created (ADMIN_EMAIL / ADMIN_PASSWORD)")
    else:
        print("Admin user already exists")
    if result['products_added']:
        print(f"{result['products_added']} sample products added")
    else:
        print("Products already exist in database")
    print("\nDatabase setup completed successfully!")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
