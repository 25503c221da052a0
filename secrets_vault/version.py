"""Secrets Vault Meta information.
   Secrets Vault stores versioned secrets encrypted under a single master key.
"""
__title__ = 'secrets_vault'
__description__ = (
   'Secrets Vault stores versioned secrets encrypted at rest '
   'under a single, rotatable master key.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/secrets-vault'
