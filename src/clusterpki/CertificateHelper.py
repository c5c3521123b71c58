#!/usr/bin/env python3
# ==========================================================================
#         ____            _                     _____           _
#        / ___| _   _ ___| |_ ___ _ __ ___     |_   _|__   ___ | |___
#        \___ \| | | / __| __/ _ \ '_ ` _ \ _____| |/ _ \ / _ \| / __|
#         ___) | |_| \__ \ ||  __/ | | | | |_____| | (_) | (_) | \__ \
#        |____/ \__, |___/\__\___|_| |_| |_|     |_|\___/ \___/|_|___/
#               |___/
#                             --- System-Tools ---
#                  https://www.nntb.no/~dreibh/system-tools/
# ==========================================================================
#
# X.509 CA and Certificate Helper Library
# Copyright (C) 2015-2025 by Thomas Dreibholz
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.
#
# Contact: thomas.dreibholz@gmail.com

import datetime
import ipaddress
import json
import os
import re
from enum   import Enum
from typing import Final

from cryptography                              import x509
from cryptography.hazmat.primitives            import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid                     import ExtendedKeyUsageOID, NameOID

from clusterpki.PKIErrors import CAGenerationError, ConfigurationError, SigningError


# Certificate Types:
class CertificateType(Enum):
   RootCA = 1
   Server = 2
   Client = 3
   Peer   = 4   # Server and client

# Some defaults:
DefaultKeyAlgorithm  : Final[str] = 'rsa'
DefaultKeyLength     : Final[int] = 2048
DefaultExpiry        : Final[str] = '17520h'   # 2 years
DefaultProfileName   : Final[str] = 'kubernetes'
DefaultCACSR         : Final[str] = json.dumps({
   'CN':    'Kubernetes',
   'key':   { 'algo': DefaultKeyAlgorithm, 'size': DefaultKeyLength },
   'names': [ { 'C': 'US', 'ST': '', 'L': '', 'O': 'Kubernetes', 'OU': 'CA' } ],
   'ca':    { 'expiry': DefaultExpiry }
})

# Certificates are valid from slightly before their creation, to tolerate
# clock skew between the nodes:
Backdate : Final[datetime.timedelta] = datetime.timedelta(minutes = 5)

# Enable verbose logging for debugging here:
VerboseMode : bool = False


# ###### Parse duration, e.g. "17520h" or "8760h30m" ########################
RE_DURATION : re.Pattern = re.compile(r'^(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?$')
def parseDuration(duration : str) -> datetime.timedelta:
   match = RE_DURATION.match(duration.strip())
   if (match is None) or (match.group(1, 2, 3) == (None, None, None)):
      raise ValueError('Invalid duration ' + repr(duration))
   hours, minutes, seconds = [ int(value) if value else 0 for value in match.group(1, 2, 3) ]
   return datetime.timedelta(hours = hours, minutes = minutes, seconds = seconds)


# ###### Key usages, as named in signing configurations #####################
KeyUsageNames : Final[dict[str, str]] = {
   'signing':            'digital_signature',
   'digital signature':  'digital_signature',
   'content commitment': 'content_commitment',
   'key encipherment':   'key_encipherment',
   'key agreement':      'key_agreement',
   'data encipherment':  'data_encipherment',
   'cert sign':          'key_cert_sign',
   'crl sign':           'crl_sign'
}
ExtendedKeyUsageNames : Final[dict[str, x509.ObjectIdentifier]] = {
   'any':              ExtendedKeyUsageOID.ANY_EXTENDED_KEY_USAGE,
   'server auth':      ExtendedKeyUsageOID.SERVER_AUTH,
   'client auth':      ExtendedKeyUsageOID.CLIENT_AUTH,
   'code signing':     ExtendedKeyUsageOID.CODE_SIGNING,
   'email protection': ExtendedKeyUsageOID.EMAIL_PROTECTION,
   's/mime':           ExtendedKeyUsageOID.EMAIL_PROTECTION,
   'timestamping':     ExtendedKeyUsageOID.TIME_STAMPING,
   'ocsp signing':     ExtendedKeyUsageOID.OCSP_SIGNING
}

def defaultUsages(certType : CertificateType) -> list[str]:
   usages = [ 'signing', 'key encipherment' ]
   if certType in [ CertificateType.Server, CertificateType.Peer ]:
      usages.append('server auth')
   if certType in [ CertificateType.Client, CertificateType.Peer ]:
      usages.append('client auth')
   return usages


# ###### Signing configuration ##############################################
class SigningConfiguration:
   """
   Signing policy in the format of cfssl's ca-config.json:
   {"signing": {"default":  {"expiry": "17520h", "usages": [...]},
                "profiles": {"kubernetes": {...}}}}
   """

   # ###### Constructor #####################################################
   def __init__(self, configuration : dict | None = None):
      self.Default  : dict            = { }
      self.Profiles : dict[str, dict] = { }
      if configuration is not None:
         signing = configuration.get('signing') if isinstance(configuration, dict) else None
         if not isinstance(signing, dict):
            raise ConfigurationError('Missing "signing" section',
                                     operation = 'Reading signing configuration')
         self.Default  = signing.get('default')  or { }
         self.Profiles = signing.get('profiles') or { }
         if (not isinstance(self.Default, dict)) or (not isinstance(self.Profiles, dict)):
            raise ConfigurationError('Bad "signing" section',
                                     operation = 'Reading signing configuration')
         for profileName in self.Profiles:
            self.profile(profileName)   # Check usages and expiry


   # ###### Read signing configuration file #################################
   @staticmethod
   def fromFile(configFileName : str | None) -> 'SigningConfiguration':
      if configFileName is None:
         return SigningConfiguration()
      try:
         with open(configFileName, 'r', encoding='utf-8') as configFile:
            configuration = json.load(configFile)
      except (OSError, ValueError) as e:
         raise ConfigurationError('Unable to read ' + configFileName,
                                  operation = 'Reading signing configuration') from e
      return SigningConfiguration(configuration)


   # ###### Get expiry and usages of a profile ##############################
   def profile(self, profileName : str | None) -> tuple[datetime.timedelta | None,
                                                        list[str] | None]:
      if (profileName is not None) and (profileName in self.Profiles):
         settings = self.Profiles[profileName]
      elif (profileName is None) or (len(self.Profiles) == 0) or (len(self.Default) > 0):
         settings = self.Default
      else:
         raise ConfigurationError('Unknown signing profile ' + repr(profileName),
                                  operation = 'Reading signing configuration')

      if not isinstance(settings, dict):
         raise ConfigurationError('Bad signing profile ' + repr(profileName),
                                  operation = 'Reading signing configuration')

      expiry : datetime.timedelta | None = None
      if settings.get('expiry'):
         try:
            expiry = parseDuration(str(settings['expiry']))
         except ValueError as e:
            raise ConfigurationError('Bad expiry in signing profile ' + repr(profileName),
                                     operation = 'Reading signing configuration') from e
      usages : list[str] | None = settings.get('usages')
      if usages is not None:
         for usage in usages:
            if (usage not in KeyUsageNames) and (usage not in ExtendedKeyUsageNames):
               raise ConfigurationError('Unknown usage ' + repr(usage) +
                                        ' in signing profile ' + repr(profileName),
                                        operation = 'Reading signing configuration')
      return ( expiry, usages )


# ###### Certificate request for a node #####################################
class CertificateRequest:

   # ###### Constructor #####################################################
   def __init__(self,
                commonName   : str,
                sans         : list[str],
                country      : str = '',
                state        : str = '',
                city         : str = '',
                keyAlgorithm : str = DefaultKeyAlgorithm,
                keySizeBits  : int = DefaultKeyLength):
      self.CommonName   : Final[str]       = commonName
      self.SANs         : Final[list[str]] = list(sans)
      self.Country      : Final[str]       = country
      self.State        : Final[str]       = state
      self.City         : Final[str]       = city
      self.KeyAlgorithm : Final[str]       = keyAlgorithm
      self.KeySizeBits  : Final[int]       = keySizeBits


   # ###### Get subject ######################################################
   def subject(self) -> x509.Name:
      return makeName(self.CommonName,
                      country = self.Country,
                      state   = self.State,
                      city    = self.City)


# ###### CA of a provisioning run ###########################################
class CA:

   # ###### Constructor #####################################################
   def __init__(self,
                privateKey     : bytes,
                certificate    : bytes,
                signingConfig  : SigningConfiguration | None = None,
                signingProfile : str | None                  = None):
      self.PrivateKey     : Final[bytes]                = privateKey
      self.Certificate    : Final[bytes]                = certificate
      self.SigningConfig  : Final[SigningConfiguration] = \
         signingConfig if signingConfig is not None else SigningConfiguration()
      self.SigningProfile : Final[str | None]           = signingProfile
      try:
         self.Key  = serialization.load_pem_private_key(privateKey, password = None)
         self.Cert = x509.load_pem_x509_certificate(certificate)
      except ValueError as e:
         raise CAGenerationError('Invalid CA key material',
                                 identity = 'ca', operation = 'Loading CA') from e


# ###### Make X.509 name ####################################################
def makeName(commonName   : str,
             country      : str = '',
             state        : str = '',
             city         : str = '',
             organization : str = '',
             unit         : str = '') -> x509.Name:
   attributes = [ ]
   for oid, value in [ ( NameOID.COUNTRY_NAME,             country      ),
                       ( NameOID.STATE_OR_PROVINCE_NAME,   state        ),
                       ( NameOID.LOCALITY_NAME,            city         ),
                       ( NameOID.ORGANIZATION_NAME,        organization ),
                       ( NameOID.ORGANIZATIONAL_UNIT_NAME, unit         ),
                       ( NameOID.COMMON_NAME,              commonName   ) ]:
      if value:
         attributes.append(x509.NameAttribute(oid, value))
   return x509.Name(attributes)


# ###### Generate private key ###############################################
def generatePrivateKey(algorithm : str, keyLength : int):
   if algorithm == 'rsa':
      if (keyLength < 2048) or (keyLength > 8192):
         raise ValueError('Invalid RSA key length ' + str(keyLength))
      return rsa.generate_private_key(public_exponent = 65537, key_size = keyLength)
   elif algorithm == 'ecdsa':
      curves = { 256: ec.SECP256R1, 384: ec.SECP384R1, 521: ec.SECP521R1 }
      if keyLength not in curves:
         raise ValueError('Invalid ECDSA key length ' + str(keyLength))
      return ec.generate_private_key(curves[keyLength]())
   raise ValueError('Invalid key algorithm ' + repr(algorithm))


# ###### Serialize private key and certificate to PEM #######################
def encodeKeyPair(key, certificate : x509.Certificate) -> tuple[bytes, bytes]:
   return ( key.private_bytes(encoding             = serialization.Encoding.PEM,
                              format               = serialization.PrivateFormat.TraditionalOpenSSL,
                              encryption_algorithm = serialization.NoEncryption()),
            certificate.public_bytes(serialization.Encoding.PEM) )


# ###### Make SubjectAlternativeName entry ##################################
def makeGeneralName(name : str) -> x509.GeneralName:
   try:
      return x509.IPAddress(ipaddress.ip_address(name))
   except ValueError:
      return x509.DNSName(name)


# ###### Load CA request template ###########################################
def loadCARequestTemplate(caRequestTemplate : str | dict) -> dict:
   if isinstance(caRequestTemplate, dict):
      template = caRequestTemplate
   elif os.path.isfile(caRequestTemplate):
      with open(caRequestTemplate, 'r', encoding='utf-8') as templateFile:
         template = json.load(templateFile)
   elif caRequestTemplate.lstrip().startswith('{'):
      template = json.loads(caRequestTemplate)
   else:
      raise ValueError('CA request template ' + caRequestTemplate + ' not found')

   if not isinstance(template, dict):
      raise ValueError('CA request template is not a JSON object')
   if not template.get('CN'):
      raise ValueError('CA request template has no CN')
   return template


# ###### Build CA key and self-signed CA certificate ########################
def buildCA(caRequestTemplate : str | dict,
            expiry            : str | None = None) -> tuple[bytes, bytes]:
   try:
      template = loadCARequestTemplate(caRequestTemplate)

      keyRequest = template.get('key') or { }
      key = generatePrivateKey(keyRequest.get('algo', DefaultKeyAlgorithm),
                               int(keyRequest.get('size', DefaultKeyLength)))

      names = template.get('names') or [ { } ]
      subject = makeName(template['CN'],
                         country      = names[0].get('C',  ''),
                         state        = names[0].get('ST', ''),
                         city         = names[0].get('L',  ''),
                         organization = names[0].get('O',  ''),
                         unit         = names[0].get('OU', ''))

      if expiry is None:
         expiry = (template.get('ca') or { }).get('expiry') or DefaultExpiry
      validity = parseDuration(expiry)

      now = datetime.datetime.now(datetime.timezone.utc)
      certificate = x509.CertificateBuilder() \
         .subject_name(subject) \
         .issuer_name(subject) \
         .public_key(key.public_key()) \
         .serial_number(x509.random_serial_number()) \
         .not_valid_before(now - Backdate) \
         .not_valid_after(now + validity) \
         .add_extension(x509.BasicConstraints(ca = True, path_length = None), critical = True) \
         .add_extension(x509.KeyUsage(digital_signature  = True,
                                      content_commitment = False,
                                      key_encipherment   = False,
                                      data_encipherment  = False,
                                      key_agreement      = False,
                                      key_cert_sign      = True,
                                      crl_sign           = True,
                                      encipher_only      = False,
                                      decipher_only      = False), critical = True) \
         .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical = False) \
         .sign(key, hashes.SHA256())
   except Exception as e:
      raise CAGenerationError('Unable to create CA certificate',
                              identity = 'ca', operation = 'Creating CA') from e

   return encodeKeyPair(key, certificate)


# ###### Sign certificate for a request #####################################
def signCertificate(ca       : CA,
                    request  : CertificateRequest,
                    certType : CertificateType    = CertificateType.Peer,
                    expiry   : str | None         = None,
                    identity : str | None         = None) -> tuple[bytes, bytes]:
   try:
      # ====== Signing policy ===============================================
      profileExpiry, usages = ca.SigningConfig.profile(ca.SigningProfile)
      if profileExpiry is not None:
         validity = profileExpiry
      else:
         validity = parseDuration(expiry if expiry else DefaultExpiry)
      if usages is None:
         usages = defaultUsages(certType)

      keyUsageFlags = { flag: False for flag in set(KeyUsageNames.values()) }
      extendedKeyUsages : list[x509.ObjectIdentifier] = [ ]
      for usage in usages:
         if usage in KeyUsageNames:
            keyUsageFlags[KeyUsageNames[usage]] = True
         elif ExtendedKeyUsageNames[usage] not in extendedKeyUsages:
            extendedKeyUsages.append(ExtendedKeyUsageNames[usage])

      # ====== Create key and certificate ===================================
      key = generatePrivateKey(request.KeyAlgorithm, request.KeySizeBits)

      now = datetime.datetime.now(datetime.timezone.utc)
      builder = x509.CertificateBuilder() \
         .subject_name(request.subject()) \
         .issuer_name(ca.Cert.subject) \
         .public_key(key.public_key()) \
         .serial_number(x509.random_serial_number()) \
         .not_valid_before(now - Backdate) \
         .not_valid_after(now + validity) \
         .add_extension(x509.BasicConstraints(ca = False, path_length = None), critical = True) \
         .add_extension(x509.KeyUsage(encipher_only = False,
                                      decipher_only = False,
                                      **keyUsageFlags), critical = True) \
         .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical = False) \
         .add_extension(x509.AuthorityKeyIdentifier.from_issuer_public_key(ca.Key.public_key()),
                        critical = False)
      if len(extendedKeyUsages) > 0:
         builder = builder.add_extension(x509.ExtendedKeyUsage(extendedKeyUsages), critical = False)
      if len(request.SANs) > 0:
         builder = builder.add_extension(
            x509.SubjectAlternativeName([ makeGeneralName(name) for name in request.SANs ]),
            critical = False)
      certificate = builder.sign(ca.Key, hashes.SHA256())
   except Exception as e:
      raise SigningError('Unable to sign certificate',
                         identity = identity, operation = 'Signing certificate') from e

   return encodeKeyPair(key, certificate)


# ###### Describe certificate (subject and subjectAltName) ##################
def describeCertificate(certificate : bytes) -> str:
   cert = x509.load_pem_x509_certificate(certificate)
   text = 'subject=' + cert.subject.rfc4514_string()
   try:
      san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
      names = [ ]
      for name in san:
         if isinstance(name, x509.IPAddress):
            names.append('IP:' + str(name.value))
         else:
            names.append('DNS:' + str(name.value))
      text += '\nX509v3 Subject Alternative Name:\n    ' + ', '.join(names)
   except x509.ExtensionNotFound:
      pass
   return text
