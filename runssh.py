#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Module for Ansible to run a command on another host over ssh, using a key
# file or a password ( password authentication needs sshpass on the
# controller / host running the module ).

from ansible.module_utils.basic import AnsibleModule

from orapac import config
from orapac.dbug import debugg, set_debugging
from orapac.errors import OrapacError
from orapac.ssh import run_ssh_command

ANSIBLE_METADATA = {'status': ['stableinterface'],
                    'supported_by': 'Cru DBA team',
                    'version': '0.1'}

DOCUMENTATION = '''
---
module: runssh
short_description: Run a command on a remote host over ssh.

notes: Returned values are then available to use in Ansible.
requirements: [ python3, ssh, sshpass (password authentication only) ]
author: "DBA Oracle module Team"
'''

EXAMPLES = '''

    - name: check the standby alert log
      local_action:
        module: runssh
        username: oracle
        hostname: "{{ standby_host }}"
        command: "tail -5 /app/oracle/diag/rdbms/stby/stby1/trace/alert_stby1.log"
        keyfile: ~/.ssh/id_rsa          (1)
        port: 22                        (2)
        timeout: 300                    (3)
        refname: alert_tail
        ignore_errors: False
        debugging: False

      (1) keyfile or password must be given. The password is handed to sshpass
          through the environment, never the command line.

      (2) port - default 22 ( GV_SSH_PORT )

      (3) timeout - seconds, default 300 ( GV_SSH_TIMEOUT )

    returns:
        alert_tail:
            output: ...
            success: True
'''

default_refname = "runssh"


def main():
    """Run a remote command, return its output"""

    module = AnsibleModule(
        argument_spec=dict(
            username=dict(required=True),
            hostname=dict(required=True),
            command=dict(required=True),
            password=dict(required=False, no_log=True),
            keyfile=dict(required=False),
            port=dict(required=False),
            timeout=dict(required=False),
            refname=dict(required=False),
            ignore_errors=dict(required=False),
            debugging=dict(required=False)
        ),
        supports_check_mode=False,
    )

    v_refname = module.params.get('refname')
    v_ignore_err = module.params.get('ignore_errors')
    set_debugging(module.params.get('debugging'))

    if v_ignore_err is None:
        vignore = config.default_ignore
    else:
        vignore = config.is_true(v_ignore_err)

    refname = v_refname or default_refname
    ansible_facts = {refname: {}}

    try:
        output = run_ssh_command(module.params.get('username'),
                                 module.params.get('hostname'),
                                 module.params.get('command'),
                                 password=module.params.get('password'),
                                 keyfile=module.params.get('keyfile'),
                                 port=module.params.get('port'),
                                 timeout=module.params.get('timeout'))
    except OrapacError as e:
        ansible_facts[refname] = {'output': str(e), 'success': False}
        if vignore:
            module.exit_json(msg=str(e), ansible_facts=ansible_facts, changed=False)
        module.fail_json(msg=str(e), ansible_facts=ansible_facts, rc=e.rc, changed=False)
        return

    ansible_facts[refname] = {'output': output, 'success': True}
    vmsg = "runssh finished successfully on {}".format(module.params.get('hostname'))
    debugg(vmsg)
    # a remote command may change anything, assume it did
    module.exit_json(msg=vmsg, ansible_facts=ansible_facts, changed=True)


# code to execute if this program is called directly
if __name__ == "__main__":
    main()
