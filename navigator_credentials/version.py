"""Navigator Credentials Meta information.
   Navigator Credentials provides password hashing, field encryption
   and short-lived user tokens for Navigator services.
"""
__title__ = 'navigator_credentials'
__description__ = (
   'Navigator Credentials provides password hashing, field encryption '
   'and short-lived user tokens for Navigator services.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-credentials'
