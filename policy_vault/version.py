"""Policy Vault Meta information.
   Policy Vault encrypts payloads under verifiable access policies and
   keeps the resulting bundles in a versioned document store.
"""
__title__ = 'policy_vault'
__description__ = (
   'Policy Vault encrypts payloads under verifiable access policies '
   'and keeps them in a versioned document store.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/policy-vault'
