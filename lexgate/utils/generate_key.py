# generate_key.py
from lexgate.utils.security import generate_fernet_key

# Generate a new Fernet key for encrypting tenant backend locations
key = generate_fernet_key()
print("Generated Fernet Key:")
print(key)
print("Add this to your .env file as LEXGATE_ENCRYPTION_KEY")
