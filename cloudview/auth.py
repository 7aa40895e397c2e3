"""AWS credential resolution and validation."""
from typing import Optional
import logging

import boto3
from botocore.exceptions import ClientError, BotoCoreError

from .config import AWSConfig
from .errors import AuthenticationError
from .regions import DEFAULT_REGION
from .type_defs import CallerIdentity

logger = logging.getLogger(__name__)


class AWSAuthenticator:
    """
    Builds an authenticated boto3 session from an AWSConfig.

    Base credentials come from static keys, a named profile or the ambient
    default chain, in that order. A configured role is assumed on top of
    the base credentials.
    """

    def __init__(self, config: AWSConfig):
        self.config = config
        self.identity: Optional[CallerIdentity] = None

    @property
    def method(self) -> str:
        """Name of the credential source that will be used."""
        if self.config.access_key_id and self.config.secret_access_key:
            base = 'static'
        elif self.config.profile:
            base = 'profile'
        else:
            base = 'default'
        return f'{base}+assume_role' if self.config.role_arn else base

    def authenticate(self) -> boto3.Session:
        """
        Resolve and validate credentials.

        Returns:
            A boto3 session whose credentials passed an identity check

        Raises:
            AuthenticationError: If credentials are missing, role assumption
                fails or the identity check is rejected
        """
        region = self.config.region or (self.config.regions[0] if self.config.regions else DEFAULT_REGION)
        logger.info(f"Authenticating to AWS using {self.method} credentials", extra={'method': self.method})

        try:
            session = self._base_session(region)
            if self.config.role_arn:
                session = self._assume_role(session, region)
            self.identity = self.validate_credentials(session)
        except AuthenticationError:
            raise
        except (ClientError, BotoCoreError) as e:
            raise AuthenticationError('aws', 'failed to establish AWS credentials', e) from e

        logger.info(
            f"Authenticated as {self.identity.get('Arn')}",
            extra={'account': self.identity.get('Account')}
        )
        return session

    def _base_session(self, region: str) -> boto3.Session:
        if self.config.access_key_id and self.config.secret_access_key:
            return boto3.Session(
                aws_access_key_id=self.config.access_key_id,
                aws_secret_access_key=self.config.secret_access_key,
                aws_session_token=self.config.session_token or None,
                region_name=region,
            )
        if self.config.profile:
            return boto3.Session(profile_name=self.config.profile, region_name=region)
        return boto3.Session(region_name=region)

    def _assume_role(self, session: boto3.Session, region: str) -> boto3.Session:
        params = {
            'RoleArn': self.config.role_arn,
            'RoleSessionName': self.config.session_name or 'cloudview-session',
            'DurationSeconds': self.config.duration_seconds,
        }
        if self.config.external_id:
            params['ExternalId'] = self.config.external_id
        if self.config.mfa_serial:
            if not self.config.mfa_token:
                raise AuthenticationError('aws', f'MFA token required for {self.config.mfa_serial}')
            params['SerialNumber'] = self.config.mfa_serial
            params['TokenCode'] = self.config.mfa_token

        try:
            response = session.client('sts').assume_role(**params)
        except ClientError as e:
            raise AuthenticationError('aws', f'failed to assume role {self.config.role_arn}', e) from e

        credentials = response['Credentials']
        logger.debug(f"Assumed role {self.config.role_arn}, expires {credentials.get('Expiration')}")
        return boto3.Session(
            aws_access_key_id=credentials['AccessKeyId'],
            aws_secret_access_key=credentials['SecretAccessKey'],
            aws_session_token=credentials['SessionToken'],
            region_name=region,
        )

    def new_session(self, session: boto3.Session) -> boto3.Session:
        """
        Build an independent session carrying the same credentials and region.

        Raises:
            AuthenticationError: If the session has no credentials
        """
        credentials = session.get_credentials()
        if credentials is None:
            raise AuthenticationError('aws', 'no AWS credentials found')
        frozen = credentials.get_frozen_credentials()
        return boto3.Session(
            aws_access_key_id=frozen.access_key,
            aws_secret_access_key=frozen.secret_key,
            aws_session_token=frozen.token,
            region_name=session.region_name,
        )

    def validate_credentials(self, session: boto3.Session) -> CallerIdentity:
        """
        Confirm the session's credentials with STS.

        Raises:
            AuthenticationError: If no credentials resolve or STS rejects them
        """
        if session.get_credentials() is None:
            raise AuthenticationError('aws', 'no AWS credentials found')
        try:
            return session.client('sts').get_caller_identity()
        except (ClientError, BotoCoreError) as e:
            raise AuthenticationError('aws', 'credential validation failed', e) from e
