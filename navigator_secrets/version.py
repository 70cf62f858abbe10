"""Navigator Secrets Meta information.
   Navigator Secrets keeps workflow secrets encrypted at rest and
   scrubs them out of task output.
"""
__title__ = 'navigator_secrets'
__description__ = (
   'Encrypted, scoped secret storage with a read-through cache '
   'and output masking for workflow platforms.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-secrets'
